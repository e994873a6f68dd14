"""Webhook server.

Usage:
    forge-review serve --port 8080

    # Or with uvicorn directly:
    uvicorn forge_review.api.server:app --host 0.0.0.0 --port 8080
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI

from forge_review import __version__
from forge_review.api.webhook import get_config, router, set_config
from forge_review.config import ReviewConfig
from forge_review.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    config = get_config()
    logger.info(
        "Starting review webhook server",
        model=config.llm_model,
        review_mode=config.review_mode.value,
        signed=bool(config.webhook_secret),
    )

    yield

    logger.info("Shutting down review webhook server")


def create_app(config: ReviewConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if config is not None:
        set_config(config)

    app = FastAPI(
        title="forge-review",
        description="AI pull request review triggered by GitHub webhooks",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(router)

    return app


app = create_app()


def run(
    host: str = "0.0.0.0",
    port: int = 8080,
    reload: bool = False,
) -> None:
    """Run the webhook server.

    Args:
        host: Host to bind to
        port: Port to listen on
        reload: Enable auto-reload for development
    """
    config = ReviewConfig.from_env()
    configure_logging(config.log_level, json_output=True)
    set_config(config)

    logger.info("Starting server", url=f"http://{host}:{port}")
    uvicorn.run(
        "forge_review.api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    run()
