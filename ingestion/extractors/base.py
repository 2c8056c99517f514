"""
Shared pieces of the report CSV extractors.

Extractors consume the raw lines of one report file and yield clean CSV
lines, each terminated by the report file ID column and a newline. They are
async generators: the downstream loader pulls rows, and an exception raised
while extracting closes the upstream line iterator with it.
"""

import csv
from typing import AsyncIterator, List, Optional, Protocol, Sequence

from core.exceptions import EmptyFileError
from ingestion.schema import Schema


class HeaderHandler(Protocol):
    async def reconcile(
        self,
        header_fields: Sequence[str],
        table_schema: Optional[Schema]
    ) -> Schema:
        ...


class CSVExtractor(Protocol):
    rows: int
    table_schema: Optional[Schema]

    def extract(self, lines: AsyncIterator[str]) -> AsyncIterator[str]:
        ...


def parse_header(line: str) -> List[str]:
    """Split a CSV header line into field names, honouring quotes."""
    return next(csv.reader([line]), [])


class RowEmitter:
    """
    Formats data rows with the file ID column and counts them.
    """

    def __init__(self, file_id: int):
        self.file_id = file_id
        self.suffix = f",{file_id}"
        self.rows = 0

    def emit(self, line: str) -> str:
        self.rows += 1
        return f"{line}{self.suffix}\n"

    def finish(self) -> None:
        """Raise if the report file produced no data rows."""
        if self.rows == 0:
            raise EmptyFileError(
                "No CSV lines found.",
                context={"file_id": self.file_id}
            )
