"""Main entry point for the dutyjobs service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from dutyjobs.api.routes import health, jobs
from dutyjobs.config import Settings, settings
from dutyjobs.jobs.executors import build_executor_registry
from dutyjobs.jobs.processor import BatchJobProcessor
from dutyjobs.services.interfaces import IRecordStore
from dutyjobs.services.postgrest import PostgrestRecordStore
from dutyjobs.services.record_store import InMemoryRecordStore
from dutyjobs.services.remote import (
    DutyApiClient,
    RemoteClassificationService,
    RemoteFeeCalculator,
    RemoteOptimizationService,
    RemoteScenarioService,
)

logger = logging.getLogger(__name__)


def build_processor(config: Settings) -> BatchJobProcessor:
    """Wire a processor against the configured record store and endpoints."""
    store: IRecordStore
    if config.postgrest_url:
        store = PostgrestRecordStore(
            config.postgrest_url,
            api_key=config.postgrest_api_key,
            timeout=config.postgrest_timeout,
        )
    else:
        logger.warning("DUTYJOBS_POSTGREST_URL not set; job records are kept in memory")
        store = InMemoryRecordStore()

    client = DutyApiClient(
        config.services_url,
        api_key=config.services_api_key,
        timeout=config.services_timeout,
    )
    executors = build_executor_registry(
        classifier=RemoteClassificationService(client),
        fee_calculator=RemoteFeeCalculator(client),
        optimizer=RemoteOptimizationService(client),
        scenarios=RemoteScenarioService(client),
    )
    return BatchJobProcessor(executors, store, config=config.processor_config())


def create_app(processor: BatchJobProcessor | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        processor: Pre-built processor (tests); built from settings otherwise.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Start the processor on startup, drain it on shutdown."""
        proc = processor or build_processor(settings)
        app.state.processor = proc
        await proc.start()
        yield
        await proc.shutdown()

    app = FastAPI(
        title="dutyjobs",
        description="Background batch job processor for duty optimization",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(jobs.router)

    return app


def main() -> None:
    """Run the application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "dutyjobs.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
