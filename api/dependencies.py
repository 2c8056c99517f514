"""
FastAPI dependencies
"""

from typing import Awaitable, Callable, Optional

from ingestion.auth import get_default_project_id
from ingestion.runner import RunOutcome, run_ingestion
from schemas.request import IngestionConfig

IngestionService = Callable[[IngestionConfig], Awaitable[RunOutcome]]
ProjectResolver = Callable[[], Optional[str]]


def get_ingestion_service() -> IngestionService:
    """Runs one ingestion; overridden in tests."""
    return run_ingestion


def get_project_resolver() -> ProjectResolver:
    """Resolves the default GCP project; overridden in tests."""
    return get_default_project_id
