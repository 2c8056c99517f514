# ============================================================================
# File: ingestion/runner.py
# Description: Report ingestion orchestrator with per-file failure isolation
# ============================================================================
"""
Ingestion Runner - Orchestrates enumerate, download, extract and load.

One run ingests the pending files of one report into one BigQuery table:

1. Resolve the report name and the destination table
2. Look back at the file IDs already in the table
3. Compute the pending queue (discovered - ingested - ignored, ordered)
4. Stream every pending file through its product's extractor into BigQuery

Files are processed strictly one after another. The first file of a new
table creates it, and its schema becomes the schema every later file is
checked against.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
import logging

import httpx

from core.config import settings
from core.exceptions import (
    DownloadError,
    IngestionException,
    ResourceNotFoundError,
)
from ingestion.auth import build_credentials, get_auth_headers
from ingestion.loaders.bigquery_loader import BigQueryWarehouse, Warehouse
from ingestion.naming import build_valid_name
from ingestion.products import ProductAdapter, get_product_adapter
from ingestion.schema import (
    DEFAULT_RENAME_PATTERNS,
    RenamePattern,
    Schema,
    SchemaReconciler,
    field_names,
    load_rename_patterns,
)
from schemas.request import IngestionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunOutcome:
    succeeded: int
    failed_ids: Tuple[int, ...]
    message: str

    @property
    def success(self) -> bool:
        return not self.failed_ids


def compute_pending_queue(
    discovered: Iterable[int],
    ingested: Iterable[int],
    ignored: Iterable[int],
    newest: bool = False
) -> List[int]:
    """File IDs still to ingest, oldest first unless `newest` is set."""
    skip = set(ingested) | set(ignored)
    return sorted((file_id for file_id in set(discovered) if file_id not in skip), reverse=newest)


class IngestionRunner:
    """
    Report ingestion orchestrator

    Responsibilities:
    - Resolve report and destination table
    - Deduplicate against file IDs already loaded
    - Run download -> extract -> load for each pending file
    - Isolate per-file failures in multi-file mode
    """

    def __init__(
        self,
        warehouse: Warehouse,
        client: httpx.AsyncClient,
        rename_patterns: Iterable[RenamePattern] = DEFAULT_RENAME_PATTERNS
    ):
        self.warehouse = warehouse
        self.client = client
        self.rename_patterns = tuple(rename_patterns)

    async def run(self, config: IngestionConfig) -> RunOutcome:
        """
        Run one ingestion for the configured report.

        Returns:
            RunOutcome with the number of ingested files and failed file IDs

        Raises:
            ResourceNotFoundError: Report, dataset or report files are missing
            IngestionException: Error of the processed file in single-file mode
        """
        adapter = get_product_adapter(config.product)
        enumerator = adapter.enumerator(self.client, config.report_id, config.profile_id)

        # --------------------------------------------------
        # RESOLVE REPORT
        # --------------------------------------------------
        logger.info(f"Checking for existence of Report {config.report_id}.")
        report_name = await enumerator.get_report_name()
        logger.info(f"Report Name: {report_name}")

        # --------------------------------------------------
        # RESOLVE DESTINATION
        # --------------------------------------------------
        logger.info(f"Checking for existence of Dataset {config.dataset_name}.")
        if not await self.warehouse.dataset_exists():
            raise ResourceNotFoundError(
                "Dataset not found.",
                context={"project_id": config.project_id, "dataset": config.dataset_name}
            )

        table_name = build_valid_name(report_name)
        logger.info(f"Checking for existence of Table {table_name}.")
        table_schema = await self.warehouse.get_table_schema(table_name)

        if table_schema is not None and config.replace:
            logger.warning(f"Replace mode: dropping Table {table_name}.")
            await self.warehouse.delete_table(table_name)
            table_schema = None

        if table_schema is not None:
            logger.info(f"BigQuery table fields: {field_names(table_schema)}")
        else:
            logger.warning("Table does not already exist.")

        # --------------------------------------------------
        # LOOKBACK: FILES ALREADY INGESTED
        # --------------------------------------------------
        logger.info("Checking ingested files.")
        ingested_ids = set()
        if table_schema is not None:
            ingested_ids = await self.warehouse.query_ingested_file_ids(table_name)
        logger.info(f"Ingested file IDs: {sorted(ingested_ids)}")

        # --------------------------------------------------
        # PENDING QUEUE
        # --------------------------------------------------
        logger.info("Enumerating report files.")
        reports = await enumerator.get_report_files()
        if not reports:
            raise ResourceNotFoundError(
                "No report files found.",
                context={"report_id": config.report_id}
            )

        pending_ids = compute_pending_queue(
            reports.keys(), ingested_ids, config.ignore, newest=config.newest
        )
        if not pending_ids:
            logger.info("No files to ingest.")
            return RunOutcome(succeeded=0, failed_ids=(), message="No files to ingest.")
        logger.info(f"Pending file IDs: {pending_ids}")

        # --------------------------------------------------
        # PIPELINE
        # --------------------------------------------------
        logger.info("Starting pipeline.")
        succeeded = 0
        failed_ids: List[int] = []

        for file_id in pending_ids:
            try:
                table_schema = await self.process_file(
                    adapter, table_name, file_id, reports[file_id], table_schema
                )
                succeeded += 1
            except IngestionException as e:
                if config.single:
                    raise
                failed_ids.append(file_id)
                logger.error(
                    f"Report file {file_id} failed: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                if table_schema is None:
                    # The failed file may have created the table at its header
                    table_schema = await self.warehouse.get_table_schema(table_name)

            if config.single:
                break

        # --------------------------------------------------
        # FINALIZE
        # --------------------------------------------------
        if failed_ids:
            ids = ",".join(str(file_id) for file_id in failed_ids)
            return RunOutcome(
                succeeded=succeeded,
                failed_ids=tuple(failed_ids),
                message=f"Ingestion failed: {ids}"
            )

        return RunOutcome(succeeded=succeeded, failed_ids=(), message="Ingestion successful.")

    async def process_file(
        self,
        adapter: ProductAdapter,
        table_name: str,
        file_id: int,
        url: str,
        table_schema: Optional[Schema]
    ) -> Schema:
        """
        Stream one report file into the table.

        Args:
            adapter: Product whose extractor parses the file
            table_name: Destination table
            file_id: Report file ID, written to the tracking column
            url: Download URL of the report file
            table_schema: Schema of record, None if the table does not exist

        Returns:
            Schema of record after this file
        """
        reconciler = SchemaReconciler(self.warehouse, table_name, self.rename_patterns)
        extractor = adapter.extractor(reconciler, file_id, table_schema)

        logger.info(f"Fetching report file {file_id}.")
        try:
            async with self.client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise DownloadError(
                        "Report file download failed.",
                        context={"file_id": file_id, "status_code": response.status_code}
                    )

                logger.info("Uploading data to BQ table.")
                await self.warehouse.load_csv(table_name, extractor.extract(response.aiter_lines()))

        except IngestionException:
            raise

        except httpx.HTTPError as e:
            raise DownloadError(
                "Report file download failed.",
                context={"file_id": file_id},
                original_exception=e
            )

        except Exception as e:
            logger.exception(f"Unexpected error processing report file {file_id}")
            raise IngestionException(
                "Unexpected error processing report file",
                context={"file_id": file_id, "table_name": table_name},
                original_exception=e
            )

        finally:
            msg = f"Processed {extractor.rows} lines for {file_id}."
            if extractor.rows > 0:
                logger.info(msg)
            else:
                logger.warning(msg)

        return extractor.table_schema


async def run_ingestion(config: IngestionConfig) -> RunOutcome:
    """Wire credentials, HTTP client and BigQuery for a run and execute it."""
    logger.info(f"Connector version: {settings.APP_VERSION}")

    adapter = get_product_adapter(config.product)
    credentials = build_credentials(adapter.scopes, config.email)
    headers = await get_auth_headers(credentials)

    logger.info("Initializing the BigQuery client.")
    warehouse = BigQueryWarehouse(config.project_id, config.dataset_name)
    patterns = load_rename_patterns(settings.RENAME_PATTERNS)

    async with httpx.AsyncClient(
        headers=headers,
        timeout=settings.HTTP_TIMEOUT,
        follow_redirects=True
    ) as client:
        runner = IngestionRunner(warehouse, client, patterns)
        return await runner.run(config)
