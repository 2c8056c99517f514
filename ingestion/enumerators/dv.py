"""
Display & Video 360 report file enumerator
"""

import logging
from typing import Any, Dict, Optional, Set

import httpx

from core.config import settings
from core.exceptions import MalformedResponseError
from ingestion.enumerators.base import request_json

logger = logging.getLogger(__name__)

DV_REPORTING_SCOPES = (
    "https://www.googleapis.com/auth/doubleclickbidmanager",
)


class DVReportEnumerator:
    """
    List generated files of a DV360 query.

    Each DV360 report of a query is one generated file; its report ID is the
    file ID and its Cloud Storage path is the download URL.
    """

    REPORT_AVAILABLE_STATE = "DONE"

    def __init__(
        self,
        client: httpx.AsyncClient,
        report_id: int,
        profile_id: Optional[int] = None,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None
    ):
        # DV360 queries are not scoped by profile
        self.client = client
        self.report_id = report_id
        self.base_url = (base_url or settings.DV_API_BASE_URL).rstrip("/")
        self.page_size = page_size or settings.REPORT_PAGE_SIZE

    @property
    def query_url(self) -> str:
        return f"{self.base_url}/queries/{self.report_id}"

    async def get_report_name(self) -> str:
        data = await request_json(self.client, self.query_url)
        title = (data.get("metadata") or {}).get("title")
        if not isinstance(title, str) or not title:
            raise MalformedResponseError(
                "Invalid or empty API response.",
                context={"url": self.query_url}
            )
        return title

    async def get_report_files(self) -> Dict[int, str]:
        url = f"{self.query_url}/reports"
        reports: Dict[int, str] = {}
        seen_file_ids: Set[int] = set()
        page_token = ""

        while True:
            params: Dict[str, Any] = {"pageSize": self.page_size}
            if page_token:
                params["pageToken"] = page_token

            data = await request_json(self.client, url, params=params)
            items = data.get("reports") or []
            if not items:
                break

            repeated = False
            for item in items:
                file_id = self._parse_file_id(item, url)
                if file_id in seen_file_ids:
                    repeated = True
                    break
                seen_file_ids.add(file_id)

                metadata = item.get("metadata") or {}
                state = (metadata.get("status") or {}).get("state")
                if state != self.REPORT_AVAILABLE_STATE:
                    logger.debug(f"Skipping report {file_id} in state {state}")
                    continue

                path = metadata.get("googleCloudStoragePath")
                if not path:
                    logger.warning(f"Report {file_id} has no Cloud Storage path")
                    continue
                reports[file_id] = path

            if repeated:
                logger.warning("Report listing repeated itself; stopping pagination.")
                break

            page_token = data.get("nextPageToken") or ""
            if not page_token:
                break

        logger.info(f"Found {len(reports)} available files out of {len(seen_file_ids)}")
        return reports

    @staticmethod
    def _parse_file_id(item: Any, url: str) -> int:
        try:
            return int(item["key"]["reportId"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                "Report is missing a valid ID.",
                context={"url": url},
                original_exception=e
            )
