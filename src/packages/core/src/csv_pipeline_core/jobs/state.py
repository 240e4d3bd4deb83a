"""Job lifecycle state machine."""
import structlog

from csv_pipeline_core.jobs.models import JobState
from csv_pipeline_core.util.errors import InvalidTransitionError

logger = structlog.get_logger()

TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.PENDING: frozenset({JobState.PROCESSING, JobState.FAILED}),
    JobState.PROCESSING: frozenset(
        {
            JobState.PROCESSING,
            JobState.COMPLETED,
            JobState.COMPLETED_WITH_ERRORS,
            JobState.FAILED,
        }
    ),
    JobState.COMPLETED: frozenset(),
    JobState.COMPLETED_WITH_ERRORS: frozenset(),
    JobState.FAILED: frozenset(),
}


def completion_state(error_rows: int) -> JobState:
    """Terminal state for a stream that was read to the end."""
    return JobState.COMPLETED_WITH_ERRORS if error_rows > 0 else JobState.COMPLETED


class JobStateMachine:
    """Tracks one run of a job and guards its terminal transition.

    The machine is created per processing run. ``finalize`` moves the run into
    a terminal state at most once: the first caller wins and every later call
    (for example an error path firing after end-of-stream already finalized)
    returns False without touching the state.
    """

    def __init__(self, job_id: str, state: JobState = JobState.PENDING):
        self.job_id = job_id
        self.state = state
        self._finalized = state.is_terminal

    @property
    def finalized(self) -> bool:
        return self._finalized

    def can_transition(self, target: JobState) -> bool:
        return target in TRANSITIONS[self.state]

    def transition(self, target: JobState) -> JobState:
        if not self.can_transition(target):
            raise InvalidTransitionError(self.job_id, self.state.value, target.value)
        logger.debug(
            "job_transition", job_id=self.job_id, source=self.state.value, target=target.value
        )
        self.state = target
        return target

    def claim(self) -> JobState:
        """Enter PROCESSING (from PENDING, or PROCESSING again on redelivery)."""
        return self.transition(JobState.PROCESSING)

    def finalize(self, target: JobState) -> bool:
        """Move to ``target`` exactly once. Returns False if already finalized."""
        if self._finalized:
            logger.debug(
                "job_finalize_skipped",
                job_id=self.job_id,
                state=self.state.value,
                requested=target.value,
            )
            return False
        if not target.is_terminal:
            raise InvalidTransitionError(self.job_id, self.state.value, target.value)
        self.transition(target)
        self._finalized = True
        return True
