"""Pipeline error types."""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ValidationError(PipelineError, ValueError):
    """Invalid configuration or input value."""


class InvalidTransitionError(PipelineError):
    """A job state change that the state machine does not allow."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id}: cannot move from {current} to {target}")


class MissingSourceError(PipelineError):
    """The file referenced by a job does not exist."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        super().__init__(f"Source file not found: {file_path}")


class StreamFaultError(PipelineError):
    """The row source failed while reading (I/O, decoding, or parser fault)."""


class MalformedMessageError(PipelineError):
    """A queue message body that is not a valid job message."""


class DispatchError(PipelineError):
    """Publishing a job message failed after the job row was created."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Job {job_id} could not be dispatched: {reason}")
