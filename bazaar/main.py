"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from bazaar.api.errors import register_error_handlers
from bazaar.api.routes import admin, ai, chat, negotiations, orders, payments, products, ratings
from bazaar.config import Settings, settings
from bazaar.container import ServiceContainer
from bazaar.db.session import create_schema
from bazaar.logging_config import setup_logging
from bazaar.worker.scheduler import setup_scheduler
from bazaar.worker.tasks import TaskRunner

logger = logging.getLogger(__name__)


def create_app(
    config: Settings = settings,
    container: Optional[ServiceContainer] = None,
    enable_metrics: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application settings
        container: Pre-built dependencies (tests); built at startup when omitted
        enable_metrics: Expose Prometheus metrics on /metrics
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting marketplace backend...")

        app.state.container = container or ServiceContainer.build(config)
        app.state.task_runner = TaskRunner(app.state.container)

        # Initialize database
        await create_schema(app.state.container.engine)

        scheduler = setup_scheduler(app.state.task_runner, config)
        scheduler.start()
        logger.info("Scheduler started")

        yield

        # Shutdown
        logger.info("Shutting down...")
        scheduler.shutdown(wait=False)
        await app.state.container.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Bazaar",
        description="Second-hand marketplace backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    if enable_metrics:
        instrumentator = Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics", "/health"],
            inprogress_name="http_requests_inprogress",
            inprogress_labels=True,
        )
        instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

    app.include_router(products.router)
    app.include_router(ai.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(chat.router)
    app.include_router(negotiations.router)
    app.include_router(ratings.router)
    app.include_router(admin.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    setup_logging(settings)
    uvicorn.run(
        app,
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )
