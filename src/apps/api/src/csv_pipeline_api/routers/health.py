"""Health check endpoint."""
import structlog
from fastapi import APIRouter, Depends
from redis.exceptions import RedisError

from csv_pipeline_api.dependencies import get_dispatcher
from csv_pipeline_core.dispatch import Dispatcher

router = APIRouter(tags=["health"])
logger = structlog.get_logger()


@router.get("/health")
def health(dispatcher: Dispatcher = Depends(get_dispatcher)):
    """Health check, including queue reachability."""
    queue = dispatcher.queue
    try:
        queue.client.ping()
        return {"status": "ok", "queue": queue.name, "queue_depth": queue.depth()}
    except RedisError as e:
        logger.warning("health_queue_unavailable", error=str(e))
        return {"status": "degraded", "queue": queue.name, "queue_depth": None}
