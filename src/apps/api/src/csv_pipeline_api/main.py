"""FastAPI application entrypoint."""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis import Redis

from csv_pipeline_api.logging import configure_logging
from csv_pipeline_api.routers import health, jobs, uploads
from csv_pipeline_api.settings import Settings, get_settings
from csv_pipeline_core.dispatch import Dispatcher
from csv_pipeline_core.jobs import JobStore, StatusVocabulary
from csv_pipeline_core.messaging import RedisQueue

logger = structlog.get_logger()


def create_app(settings: Settings | None = None, redis_client: Redis | None = None) -> FastAPI:
    """Build the app. A passed-in Redis client is used as-is and not closed."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        configure_logging(cfg.log_level)
        logger.info("initializing_database")
        store = JobStore(cfg.sqlite_path, StatusVocabulary(cfg.status_vocabulary))
        store.init_db()

        client = redis_client or Redis.from_url(cfg.redis_url)
        queue = RedisQueue(client, cfg.queue_name, consumer="api")
        app.state.settings = cfg
        app.state.store = store
        app.state.dispatcher = Dispatcher(
            store,
            queue,
            publish_attempts=cfg.publish_attempts,
            retry_wait_seconds=cfg.publish_retry_wait_seconds,
            on_publish_failure=cfg.on_publish_failure,
        )
        try:
            yield
        finally:
            if redis_client is None:
                client.close()

    app = FastAPI(title="CSV Pipeline API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(uploads.router, prefix="/api")
    app.include_router(jobs.router, prefix="/api")
    return app


app = create_app()
