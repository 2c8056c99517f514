"""
Display & Video 360 report file extractor
"""

import enum
import logging
import re
from typing import AsyncIterator, Optional

from core.exceptions import MalformedReportError
from ingestion.extractors.base import HeaderHandler, RowEmitter, parse_header
from ingestion.schema import Schema

logger = logging.getLogger(__name__)

# DV360 report date format: YYYY/MM/DD
DV_DATE_PATTERN = re.compile(r"(\d{4})/(\d{2})/(\d{2})")
# BigQuery date format for strings: YYYY-MM-DD
BQ_DATE_REPLACE = r"\1-\2-\3"


def convert_dates(line: str) -> str:
    """Convert every DV360 date in a CSV line to BigQuery format."""
    return DV_DATE_PATTERN.sub(BQ_DATE_REPLACE, line)


class DVState(enum.Enum):
    HEADER_ROW = "header_row"
    STREAMING = "streaming"
    SUMMARY_DETECTED = "summary_detected"
    DONE = "done"


class DVCSVExtractor:
    """
    Extract CSV rows from a DV360 report file.

    DV360 report files start with the header row. Data rows follow, then a
    summary block whose first line is empty or starts with a comma; the
    summary block and everything after it is discarded.
    """

    def __init__(
        self,
        header_handler: HeaderHandler,
        file_id: int,
        table_schema: Optional[Schema] = None
    ):
        self.header_handler = header_handler
        self.file_id = file_id
        self.table_schema = table_schema
        self.state = DVState.HEADER_ROW
        self._emitter = RowEmitter(file_id)

    @property
    def rows(self) -> int:
        return self._emitter.rows

    async def extract(self, lines: AsyncIterator[str]) -> AsyncIterator[str]:
        async for line in lines:
            if self.state is DVState.HEADER_ROW:
                names = parse_header(line)
                logger.info(f"Report file fields: {names}")
                self.table_schema = await self.header_handler.reconcile(names, self.table_schema)
                self.state = DVState.STREAMING

            elif not line or line.startswith(","):
                self.state = DVState.SUMMARY_DETECTED
                break

            else:
                yield self._emitter.emit(convert_dates(line))

        if self.state is DVState.HEADER_ROW:
            raise MalformedReportError(
                "Report file is empty.",
                context={"file_id": self.file_id}
            )

        self.state = DVState.DONE
        self._emitter.finish()
