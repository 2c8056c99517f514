"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone


class IngestionResponse(BaseModel):
    """Outcome of an ingestion request"""
    success: bool
    message: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Ingestion successful."
            }
        }
    )


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(default="healthy")
    version: str
    environment: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
