"""
Pydantic schemas for request validation and response serialization.

Schemas:
    request: Ingestion request body and the run configuration parsed from it
    api: API endpoint response schemas

Usage:
    from schemas.request import IngestionConfig, decode_body, parse_body
    from schemas.api import IngestionResponse

Example:
    config = parse_body(
        decode_body(b'{"product": "dv", "reportId": "123", "datasetName": "reports"}'),
        default_project_id=lambda: "my-project",
    )

    # Pydantic coerces types and applies defaults
    assert config.product == "DV"
    assert config.report_id == 123
    assert config.single is True
"""

__all__ = [
    "IngestionConfig",
    "IngestionResponse",
    "HealthCheckResponse",
    "decode_body",
    "parse_body",
]
