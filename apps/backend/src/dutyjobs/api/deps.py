"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from dutyjobs.jobs.processor import BatchJobProcessor


def get_processor(request: Request) -> BatchJobProcessor:
    """Dependency that provides the processor created at app startup."""
    processor = getattr(request.app.state, "processor", None)
    if processor is None:
        raise RuntimeError("BatchJobProcessor not initialized; the app lifespan has not run")
    return processor
