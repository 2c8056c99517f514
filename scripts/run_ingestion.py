"""
Script to run one report ingestion locally, without the HTTP service

Usage:
    python scripts/run_ingestion.py request.json
    python scripts/run_ingestion.py '{"product": "DV", "reportId": 123, "datasetName": "reports"}'
"""

import asyncio
import sys
import os
import logging
from pathlib import Path

# Add current directory to path to allow imports from core, ingestion, etc.
sys.path.append(os.getcwd())

from core.exceptions import IngestionException
from core.logging import setup_logging
from ingestion.auth import get_default_project_id
from ingestion.runner import run_ingestion
from schemas.request import decode_body, parse_body

logger = logging.getLogger(__name__)


async def run(raw_body: str) -> int:
    """Run ingestion for a JSON request body; returns the exit code."""
    try:
        config = parse_body(decode_body(raw_body), default_project_id=get_default_project_id)
        outcome = await run_ingestion(config)
    except IngestionException as e:
        logger.error(f"Ingestion failed: {e}")
        return 1

    if not outcome.success:
        logger.error(outcome.message)
        return 1

    logger.info(outcome.message)
    return 0


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)

    argument = sys.argv[1]
    path = Path(argument)
    raw_body = path.read_text() if path.is_file() else argument

    setup_logging()
    sys.exit(asyncio.run(run(raw_body)))


if __name__ == "__main__":
    main()
