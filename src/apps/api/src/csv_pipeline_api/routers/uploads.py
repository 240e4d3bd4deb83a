"""File upload endpoint."""
import os

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from csv_pipeline_api.dependencies import get_app_settings, get_dispatcher, get_vocabulary
from csv_pipeline_api.settings import Settings
from csv_pipeline_core.dispatch import Dispatcher
from csv_pipeline_core.ingest import detect_format
from csv_pipeline_core.jobs import JobState, StatusVocabulary
from csv_pipeline_core.util import DispatchError, generate_upload_name

router = APIRouter(prefix="/uploads", tags=["uploads"])
logger = structlog.get_logger()

UPLOAD_CHUNK_BYTES = 1024 * 1024


def _remove(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


@router.post("")
async def upload_file(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_app_settings),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    vocabulary: StatusVocabulary = Depends(get_vocabulary),
):
    """Store an uploaded file and queue it for processing."""
    max_bytes = settings.max_upload_mb * 1024 * 1024
    os.makedirs(settings.upload_dir, exist_ok=True)
    save_path = os.path.join(settings.upload_dir, generate_upload_name(file.filename))

    size = 0
    too_large = False
    with open(save_path, "wb") as f:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                too_large = True
                break
            f.write(chunk)
    if too_large:
        _remove(save_path)
        raise HTTPException(
            status_code=413, detail=f"File too large (max {settings.max_upload_mb} MB)"
        )

    if not detect_format(save_path):
        _remove(save_path)
        raise HTTPException(status_code=400, detail="Unsupported file format (expected .csv or .tsv)")

    filename = file.filename or os.path.basename(save_path)
    try:
        job = dispatcher.dispatch(filename, save_path)
    except DispatchError as e:
        raise HTTPException(status_code=503, detail=f"Could not queue job {e.job_id}") from e

    logger.info("upload_accepted", job_id=job.job_id, filename=filename, size_bytes=size)
    return {
        "job_id": job.job_id,
        "status": vocabulary.label(JobState.PENDING),
        "message": "File received and queued for processing.",
    }
