"""Job status endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from csv_pipeline_api.dependencies import get_store
from csv_pipeline_core.jobs import JobStatus, JobStore

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("")
def list_jobs(active_only: bool = False, store: JobStore = Depends(get_store)):
    """List jobs. If active_only=true, returns only pending/processing jobs."""
    jobs = store.list_active_jobs() if active_only else store.list_recent_jobs(limit=20)
    return {"jobs": [JobStatus.from_job(j, store.vocabulary).model_dump() for j in jobs]}


@router.get("/{job_id}")
def get_job_status(job_id: str, store: JobStore = Depends(get_store)):
    """Get job status."""
    job = store.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatus.from_job(job, store.vocabulary).model_dump()


@router.get("/{job_id}/errors")
def get_job_errors(
    job_id: str,
    limit: int = Query(100, ge=1, le=1000),
    store: JobStore = Depends(get_store),
):
    """List the rows that failed for a job."""
    if not store.get_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    errors = store.list_job_errors(job_id, limit=limit)
    return {
        "job_id": job_id,
        "total": store.count_job_errors(job_id),
        "errors": [e.model_dump() for e in errors],
    }
