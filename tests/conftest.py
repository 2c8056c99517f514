"""
Pytest configuration and fixtures
"""

from typing import AsyncIterator, Dict, Iterable, List, Optional, Set

import pytest

from ingestion.schema import Schema, build_schema
from schemas.request import IngestionConfig


class FakeWarehouse:
    """In-memory stand-in for BigQueryWarehouse"""

    def __init__(self, dataset_present: bool = True):
        self.dataset_present = dataset_present
        self.tables: Dict[str, Schema] = {}
        self.rows: Dict[str, List[str]] = {}
        self.created: List[str] = []
        self.deleted: List[str] = []
        self.loads = 0

    async def dataset_exists(self) -> bool:
        return self.dataset_present

    async def get_table_schema(self, table_name: str) -> Optional[Schema]:
        return self.tables.get(table_name)

    async def create_table(self, table_name: str, schema: Schema) -> Schema:
        self.tables[table_name] = schema
        self.rows.setdefault(table_name, [])
        self.created.append(table_name)
        return schema

    async def delete_table(self, table_name: str) -> None:
        self.tables.pop(table_name, None)
        self.rows.pop(table_name, None)
        self.deleted.append(table_name)

    async def query_ingested_file_ids(self, table_name: str) -> Set[int]:
        return {
            int(row.rstrip("\n").rsplit(",", 1)[1])
            for row in self.rows.get(table_name, [])
        }

    async def load_csv(self, table_name: str, rows: AsyncIterator[str]) -> int:
        # Buffer first: a failing stream must leave the table untouched
        buffered = [row async for row in rows]
        self.rows.setdefault(table_name, []).extend(buffered)
        self.loads += 1
        return len(buffered)


class RecordingHandler:
    """Header handler that records calls and accepts any header"""

    def __init__(self, error: Optional[Exception] = None):
        self.calls: List[List[str]] = []
        self.error = error

    async def reconcile(self, header_fields, table_schema):
        self.calls.append(list(header_fields))
        if self.error:
            raise self.error
        return build_schema(header_fields)


@pytest.fixture
def fake_warehouse():
    """Empty dataset with no tables"""
    return FakeWarehouse()


@pytest.fixture
def recording_handler():
    return RecordingHandler()


@pytest.fixture
def failing_handler():
    """Factory for handlers raising the given exception at the header"""
    return lambda error: RecordingHandler(error=error)


@pytest.fixture
def async_lines():
    """Factory turning a list of lines into an async iterator, tracking reads"""

    class LineSource:
        def __init__(self, lines: Iterable[str]):
            self.lines = list(lines)
            self.pulled = 0

        def __aiter__(self):
            return self._iterate()

        async def _iterate(self):
            for line in self.lines:
                self.pulled += 1
                yield line

    return LineSource


@pytest.fixture
def collect():
    """Drain an extractor into a list of emitted rows"""

    async def _collect(extractor, lines) -> List[str]:
        return [row async for row in extractor.extract(lines.__aiter__())]

    return _collect


@pytest.fixture
def make_config():
    """Factory for IngestionConfig with test defaults"""

    def _make(**overrides) -> IngestionConfig:
        body = {
            "product": "DV",
            "reportId": 7,
            "datasetName": "reports",
            "projectId": "test-project",
            "single": False,
        }
        body.update(overrides)
        return IngestionConfig.model_validate(body)

    return _make

