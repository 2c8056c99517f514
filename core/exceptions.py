"""
Custom exceptions for the report ingestion pipeline with structured error context.

Each exception carries context information for debugging and for the
message returned to the caller.

Exception Hierarchy:
    IngestionException (base)
    ├── ConfigError
    ├── ResourceNotFoundError
    ├── ExtractionError
    │   ├── MalformedReportError
    │   ├── EmptyFileError
    │   └── SchemaDriftError
    ├── TransportError
    │   ├── AuthenticationError
    │   ├── MalformedResponseError
    │   ├── DownloadError
    │   └── LoadError
    └── IngestionFailedError

Severity:
    ConfigError and ResourceNotFoundError abort the whole run.
    ExtractionError and TransportError subclasses raised while processing a
    report file fail that file only, unless the run is in single-file mode.
"""

from typing import Optional, Dict, Any, Iterable, List
from datetime import datetime, timezone


class IngestionException(Exception):
    """
    Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (report, file, table, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigError(IngestionException):
    """
    Missing or invalid request field. Raised before any I/O.

    Context should include:
        - field: Name of the offending field (if applicable)
    """
    pass


class ResourceNotFoundError(IngestionException):
    """
    Report, dataset or report file does not exist.

    Context should include:
        - url / dataset / report_id: Identifier of the missing resource
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(IngestionException):
    """Base exception for report file content failures."""
    pass


class MalformedReportError(ExtractionError):
    """
    Report file has no recognizable header line.

    Context should include:
        - file_id: Report file being processed
    """
    pass


class EmptyFileError(ExtractionError):
    """
    Report file has a recognized header but zero data rows.

    Context should include:
        - file_id: Report file being processed
    """
    pass


class SchemaDriftError(ExtractionError):
    """
    Table schema is incompatible with the report schema, even after
    renaming legacy columns.

    Context should include:
        - table_fields: Field names of the destination table
        - report_fields: Field names built from the report header
    """
    pass


# ============================================================================
# Transport Errors
# ============================================================================

class TransportError(IngestionException):
    """
    Base exception for HTTP and warehouse failures.

    Context should include:
        - url: The endpoint that failed (if applicable)
        - status_code: HTTP status code (if applicable)
    """
    pass


class AuthenticationError(TransportError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class MalformedResponseError(TransportError):
    """Reporting API response is missing required fields or is not JSON."""
    pass


class DownloadError(TransportError):
    """Report file download failed."""
    pass


class LoadError(TransportError):
    """
    BigQuery load job failed.

    Context should include:
        - table_name: Destination table
        - rows: Number of rows that were offered to the job
    """
    pass


# ============================================================================
# Run-level Errors
# ============================================================================

class IngestionFailedError(IngestionException):
    """One or more report files failed during a multi-file run."""

    def __init__(self, failed_ids: Iterable[int], context: Optional[Dict[str, Any]] = None):
        self.failed_ids: List[int] = list(failed_ids)
        ids = ",".join(str(file_id) for file_id in self.failed_ids)
        super().__init__(f"Ingestion failed: {ids}", context=context)
