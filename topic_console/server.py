# topic_console/server.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from topic_console import __version__
from topic_console.api import topics as topics_router
from topic_console.core.config import settings
from topic_console.core.errors import install_exception_handlers

logger = logging.getLogger(__name__)


# Lifespan handler replaces @app.on_event("startup"/"shutdown")
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Console API starting (bootstrap=%s, prefix=%s)", settings.kafka_bootstrap, settings.api_prefix)
    try:
        yield
    finally:
        # Only close the service if a request ever created it
        if topics_router.get_kafka_service.cache_info().currsize:
            topics_router.get_kafka_service().close()
            topics_router.get_kafka_service.cache_clear()


def create_app() -> FastAPI:
    prefix = settings.api_prefix.rstrip("/")
    app = FastAPI(
        title="Topic Console API",
        version=__version__,
        lifespan=lifespan,
        # Put OpenAPI/docs under the REST prefix
        openapi_url=f"{prefix}/openapi.json",
        docs_url=f"{prefix}/docs",
        redoc_url=f"{prefix}/redoc",
    )

    # --- CORS: allow web-ui during development (configurable via settings.cors_allow_origins) ---
    allow_origins = settings.cors_allow_origins or [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    @app.get(f"{prefix}/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(topics_router.router, prefix=prefix)

    if settings.metrics_enabled:
        from topic_console.api import metrics as metrics_router
        # metrics lives at /metrics (Prometheus convention)
        app.include_router(metrics_router.router, prefix="")

    return app


app = create_app()


def run(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    import uvicorn
    uvicorn.run(
        "topic_console.server:app",
        host=host or settings.server_host,
        port=port or settings.server_port,
        reload=reload,
    )


if __name__ == "__main__":
    run(reload=True)
