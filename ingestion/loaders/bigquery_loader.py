"""
BigQuery destination: table lifecycle, lookback query and CSV load jobs
"""

import asyncio
import logging
import tempfile
from typing import AsyncIterator, Iterable, List, Optional, Protocol, Set

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import bigquery

from core.config import settings
from core.exceptions import LoadError, TransportError
from ingestion.naming import FILE_ID_COLUMN, build_lookback_query
from ingestion.schema import Schema, SchemaField

logger = logging.getLogger(__name__)


class Warehouse(Protocol):
    async def dataset_exists(self) -> bool:
        ...

    async def get_table_schema(self, table_name: str) -> Optional[Schema]:
        ...

    async def create_table(self, table_name: str, schema: Schema) -> Schema:
        ...

    async def delete_table(self, table_name: str) -> None:
        ...

    async def query_ingested_file_ids(self, table_name: str) -> Set[int]:
        ...

    async def load_csv(self, table_name: str, rows: AsyncIterator[str]) -> int:
        ...


def to_bq_schema(schema: Iterable[SchemaField]) -> List[bigquery.SchemaField]:
    return [bigquery.SchemaField(field.name, field.field_type) for field in schema]


def from_bq_schema(fields: Iterable[bigquery.SchemaField]) -> Schema:
    return tuple(SchemaField(field.name, field.field_type) for field in fields)


class BigQueryWarehouse:
    """
    BigQuery dataset holding one table per report.

    The client library is blocking, so every call runs in a worker thread.
    """

    def __init__(
        self,
        project_id: str,
        dataset_name: str,
        client: Optional[bigquery.Client] = None,
        null_marker: Optional[str] = None,
        spool_max_bytes: Optional[int] = None
    ):
        self.project_id = project_id
        self.dataset_name = dataset_name
        self.client = client or bigquery.Client(project=project_id)
        self.null_marker = null_marker if null_marker is not None else settings.NULL_MARKER
        self.spool_max_bytes = spool_max_bytes or settings.LOAD_SPOOL_MAX_BYTES

    @property
    def dataset_id(self) -> str:
        return f"{self.project_id}.{self.dataset_name}"

    def table_id(self, table_name: str) -> str:
        return f"{self.dataset_id}.{table_name}"

    async def dataset_exists(self) -> bool:
        try:
            await asyncio.to_thread(self.client.get_dataset, self.dataset_id)
        except NotFound:
            return False
        except GoogleAPIError as e:
            raise TransportError(
                "Failed to check dataset",
                context={"dataset": self.dataset_id},
                original_exception=e
            )
        return True

    async def get_table_schema(self, table_name: str) -> Optional[Schema]:
        """Schema of an existing table, or None if the table does not exist."""
        try:
            table = await asyncio.to_thread(self.client.get_table, self.table_id(table_name))
        except NotFound:
            return None
        except GoogleAPIError as e:
            raise TransportError(
                "Failed to fetch table metadata",
                context={"table_name": table_name},
                original_exception=e
            )
        return from_bq_schema(table.schema)

    async def create_table(self, table_name: str, schema: Schema) -> Schema:
        """Create a table and return the schema BigQuery reports for it."""
        table = bigquery.Table(self.table_id(table_name), schema=to_bq_schema(schema))
        try:
            created = await asyncio.to_thread(self.client.create_table, table)
        except GoogleAPIError as e:
            raise TransportError(
                "Failed to create table",
                context={"table_name": table_name},
                original_exception=e
            )
        return from_bq_schema(created.schema)

    async def delete_table(self, table_name: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.delete_table, self.table_id(table_name), not_found_ok=True
            )
        except GoogleAPIError as e:
            raise TransportError(
                "Failed to delete table",
                context={"table_name": table_name},
                original_exception=e
            )

    async def query_ingested_file_ids(self, table_name: str) -> Set[int]:
        """Distinct file IDs already loaded into the table."""
        query = build_lookback_query(self.table_id(table_name))

        def run_query() -> List[object]:
            return [row[FILE_ID_COLUMN] for row in self.client.query(query).result()]

        try:
            values = await asyncio.to_thread(run_query)
        except GoogleAPIError as e:
            raise TransportError(
                "Failed to query ingested files",
                context={"table_name": table_name},
                original_exception=e
            )
        return {int(value) for value in values if value is not None}

    async def load_csv(self, table_name: str, rows: AsyncIterator[str]) -> int:
        """
        Append CSV rows to a table with a load job.

        Rows are spooled (in memory up to `spool_max_bytes`, on disk beyond)
        and the job only starts once the row stream is exhausted, so a
        failure while producing rows leaves the table untouched.

        Returns:
            Number of rows loaded
        """
        job_config = bigquery.LoadJobConfig(
            source_format=bigquery.SourceFormat.CSV,
            field_delimiter=",",
            null_marker=self.null_marker,
            write_disposition=bigquery.WriteDisposition.WRITE_APPEND,
        )

        with tempfile.SpooledTemporaryFile(max_size=self.spool_max_bytes, mode="r+b") as spool:
            count = 0
            async for row in rows:
                spool.write(row.encode("utf-8"))
                count += 1

            if count == 0:
                return 0

            def run_job() -> None:
                job = self.client.load_table_from_file(
                    spool,
                    self.table_id(table_name),
                    job_config=job_config,
                    rewind=True,
                )
                job.result()

            logger.info(f"Uploading {count} rows to BigQuery table {table_name}.")
            try:
                await asyncio.to_thread(run_job)
            except (GoogleAPIError, ValueError) as e:
                raise LoadError(
                    "BigQuery load job failed",
                    context={"table_name": table_name, "rows": count},
                    original_exception=e
                )

        return count
