"""
Ingestion request parsing and validation
"""

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from core.exceptions import ConfigError

logger = logging.getLogger(__name__)

SUPPORTED_PRODUCTS = ("CM", "DV")


class IngestionConfig(BaseModel):
    """
    Options of one ingestion run, parsed from the request body.

    Field aliases follow the JSON request body (camelCase).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    product: str = Field(..., description="Marketing Platform product: CM or DV")
    report_id: int = Field(..., alias="reportId", description="Report (CM) or query (DV) ID")
    dataset_name: str = Field(..., alias="datasetName", min_length=1, description="BigQuery dataset")
    profile_id: Optional[int] = Field(None, alias="profileId", description="CM user profile ID")
    project_id: Optional[str] = Field(None, alias="projectId", description="GCP project of the dataset")
    single: bool = Field(True, description="Ingest at most one file per run")
    ignore: Tuple[int, ...] = Field(default_factory=tuple, description="File IDs to skip")
    newest: bool = Field(False, description="Ingest newest files first")
    replace: bool = Field(False, description="Drop the table before ingesting")
    email: Optional[str] = Field(None, description="Service account to impersonate")

    @field_validator("product", mode="before")
    @classmethod
    def normalize_product(cls, v):
        if not isinstance(v, str):
            raise ValueError("Provide a Marketing Platform product value - CM or DV.")
        product = v.upper()
        if product not in SUPPORTED_PRODUCTS:
            raise ValueError("Provide a supported Marketing Platform product - CM or DV.")
        return product

    @field_validator("ignore", mode="before")
    @classmethod
    def coerce_ignore(cls, v):
        """Keep entries that convert to integers, sorted ascending."""
        if not isinstance(v, (list, tuple)):
            return ()
        ids = []
        for item in v:
            try:
                ids.append(int(item))
            except (TypeError, ValueError):
                continue
        return tuple(sorted(ids))

    @field_validator("single", "newest", "replace", mode="before")
    @classmethod
    def coerce_flag(cls, v):
        """Any JSON value is accepted; null and falsy values mean false."""
        return bool(v)

    @field_validator("project_id", "email", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        if isinstance(v, str) and not v:
            return None
        return v

    @model_validator(mode="after")
    def require_profile_for_cm(self):
        if self.product == "CM" and self.profile_id is None:
            raise ValueError("Provide a Profile ID.")
        return self


def decode_body(body: Union[bytes, str, Mapping[str, Any], None]) -> Dict[str, Any]:
    """
    Decode a request body that may still be encoded.

    Scheduler invocations deliver raw JSON bytes, direct invocations an
    already decoded object.
    """
    if not body:
        raise ConfigError("Request body is empty.")

    if isinstance(body, (bytes, str)):
        try:
            decoded = json.loads(body)
        except ValueError as e:
            raise ConfigError("Request body is malformed.", original_exception=e)
    else:
        decoded = body

    if not isinstance(decoded, Mapping):
        raise ConfigError("Request body is malformed.")
    return dict(decoded)


def parse_body(
    body: Mapping[str, Any],
    default_project_id: Optional[Callable[[], Optional[str]]] = None
) -> IngestionConfig:
    """
    Validate a decoded request body into an IngestionConfig.

    Args:
        body: Decoded JSON request body
        default_project_id: Resolves the project when the body has none

    Raises:
        ConfigError: If a field is missing or invalid
    """
    try:
        config = IngestionConfig.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise ConfigError(
            f"Invalid request field {field}: {first['msg']}",
            context={"field": field},
            original_exception=e
        )

    if config.project_id is None and default_project_id is not None:
        config = config.model_copy(update={"project_id": default_project_id()})
    if not config.project_id:
        raise ConfigError("Provide a GCP Project ID.", context={"field": "projectId"})

    logger.info(f"Product: {config.product}")
    logger.info(f"Report ID: {config.report_id}")
    logger.info(f"Dataset name: {config.dataset_name}")
    logger.info(f"Profile ID: {config.profile_id}")
    logger.info(f"Project ID: {config.project_id}")
    if config.single:
        logger.info("File Mode: Single")
    else:
        logger.warning("File Mode: Multiple")
    if config.ignore:
        logger.warning(f"Ignoring file IDs: {list(config.ignore)}")
    logger.info(f"Ordering Mode: {'newest' if config.newest else 'oldest'}")
    if config.replace:
        logger.warning("Insertion Mode: replace")
    else:
        logger.info("Insertion Mode: append")
    if config.email:
        logger.info(f"Impersonating Service Account: {config.email}")
    else:
        logger.info("Using default Service Account")

    return config
