"""
Ingestion endpoint
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import (
    IngestionService,
    ProjectResolver,
    get_ingestion_service,
    get_project_resolver,
)
from core.exceptions import IngestionException, IngestionFailedError
from schemas.api import IngestionResponse
from schemas.request import decode_body, parse_body

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Ingestion"])


def _resolve(message: str) -> JSONResponse:
    logger.info(message)
    return JSONResponse(
        status_code=200,
        content=IngestionResponse(success=True, message=message).model_dump()
    )


def _reject(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=IngestionResponse(success=False, message=message).model_dump()
    )


@router.post("/", response_model=IngestionResponse)
@router.post("/ingest", response_model=IngestionResponse)
async def ingest(
    request: Request,
    service: IngestionService = Depends(get_ingestion_service),
    resolve_project: ProjectResolver = Depends(get_project_resolver)
):
    """
    Ingest pending files of a CM360 or DV360 report into BigQuery.

    Returns:
    - 200 with success=true when every processed file was ingested, or
      when there was nothing to ingest
    - 500 with success=false and the error message otherwise
    """
    request_id = getattr(request.state, "request_id", "-")

    try:
        body = decode_body(await request.body())
        config = parse_body(body, default_project_id=resolve_project)
        outcome = await service(config)
        if not outcome.success:
            raise IngestionFailedError(outcome.failed_ids)

    except IngestionException as e:
        logger.error(f"[{request_id}] {e}", extra={"error_context": e.to_dict()})
        return _reject(e.message)

    except Exception as e:
        logger.exception(f"[{request_id}] Unexpected error during ingestion")
        return _reject(str(e))

    return _resolve(outcome.message)
