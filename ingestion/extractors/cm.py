"""
Campaign Manager 360 report file extractor
"""

import enum
import logging
from typing import AsyncIterator, Optional

from core.exceptions import MalformedReportError
from ingestion.extractors.base import HeaderHandler, RowEmitter, parse_header
from ingestion.schema import Schema

logger = logging.getLogger(__name__)


class CMState(enum.Enum):
    SCANNING_METADATA = "scanning_metadata"
    FIELDS_SENTINEL_SEEN = "fields_sentinel_seen"
    HEADER_CONSUMED = "header_consumed"
    STREAMING = "streaming"
    DONE = "done"


class CMCSVExtractor:
    """
    Extract CSV rows from a CM360 report file.

    CM360 report files look like:

        <report metadata lines, not valid CSV>
        Report Fields
        <header>
        <data rows>
        <grand total summary line>

    The summary line cannot be told apart from a data row by content, so rows
    are emitted one line behind: a row is only yielded once a following line
    has been read, which leaves the final line unemitted.
    """

    FIELDS_SENTINEL = "Report Fields"

    def __init__(
        self,
        header_handler: HeaderHandler,
        file_id: int,
        table_schema: Optional[Schema] = None
    ):
        self.header_handler = header_handler
        self.file_id = file_id
        self.table_schema = table_schema
        self.state = CMState.SCANNING_METADATA
        self._emitter = RowEmitter(file_id)

    @property
    def rows(self) -> int:
        return self._emitter.rows

    async def extract(self, lines: AsyncIterator[str]) -> AsyncIterator[str]:
        pending: Optional[str] = None

        async for line in lines:
            if self.state is CMState.STREAMING:
                if not line:
                    continue
                yield self._emitter.emit(pending)
                pending = line

            elif self.state is CMState.HEADER_CONSUMED:
                if not line:
                    continue
                # Start buffering one line behind
                pending = line
                self.state = CMState.STREAMING

            elif self.state is CMState.FIELDS_SENTINEL_SEEN:
                names = parse_header(line)
                logger.info(f"Report file fields: {names}")
                self.table_schema = await self.header_handler.reconcile(names, self.table_schema)
                self.state = CMState.HEADER_CONSUMED

            elif line == self.FIELDS_SENTINEL:
                self.state = CMState.FIELDS_SENTINEL_SEEN

            # Anything else is report metadata preceding the sentinel

        if self.state in (CMState.SCANNING_METADATA, CMState.FIELDS_SENTINEL_SEEN):
            raise MalformedReportError(
                "Report fields header not found.",
                context={"file_id": self.file_id}
            )

        # `pending` now holds the summary line and is dropped
        self.state = CMState.DONE
        self._emitter.finish()
