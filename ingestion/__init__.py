"""
Report ingestion pipeline components.

This package contains everything needed to move CM360 and DV360 report
files into BigQuery:

Modules:
    naming: BigQuery-safe identifiers and the file ID tracking column
    schema: Report schema building, comparison and reconciliation
    products: Per-product enumerator and extractor selection
    auth: Google credentials and bearer headers for the reporting APIs
    runner: Orchestrator that enumerates, deduplicates and streams files

Subpackages:
    enumerators: Report file listing per product (CM, DV)
    extractors: Line-by-line CSV extractors per product (CM, DV)
    loaders: BigQuery destination

Architecture:
    Each pending report file flows through a streaming pipeline:

    1. Download - Stream the report file line by line
    2. Extract - Drop report preamble/summary noise, append the file ID
    3. Load - Append rows to the report's BigQuery table

    The file ID column doubles as the ingestion ledger: files already in
    the table are never ingested again.

Usage:
    from ingestion.runner import IngestionRunner, run_ingestion
    from schemas.request import parse_body

Example:
    config = parse_body({"product": "CM", "reportId": 1, "profileId": 2,
                         "datasetName": "reports", "projectId": "my-project"})
    outcome = await run_ingestion(config)

    print(outcome.message)

Error Handling:
    All components raise exceptions from core.exceptions. Per-file errors
    fail only that file unless the run is in single-file mode.
"""

__all__ = [
    "IngestionRunner",
    "RunOutcome",
    "run_ingestion",
    "compute_pending_queue",
    "CMCSVExtractor",
    "DVCSVExtractor",
    "CMReportEnumerator",
    "DVReportEnumerator",
    "BigQueryWarehouse",
]
