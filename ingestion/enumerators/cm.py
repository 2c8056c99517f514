"""
Campaign Manager 360 report file enumerator
"""

import logging
from typing import Any, Dict, Optional, Set

import httpx

from core.config import settings
from core.exceptions import ConfigError, MalformedResponseError
from ingestion.enumerators.base import request_json

logger = logging.getLogger(__name__)

CM_REPORTING_SCOPES = (
    "https://www.googleapis.com/auth/dfareporting",
)


class CMReportEnumerator:
    """
    List generated files of a CM360 report.

    The files endpoint is known to return its final page indefinitely, with
    the same items and a fresh page token each time. Pagination therefore
    stops at the first file ID already seen during the call, whatever the
    page token says.
    """

    REPORT_AVAILABLE_STATE = "REPORT_AVAILABLE"

    def __init__(
        self,
        client: httpx.AsyncClient,
        report_id: int,
        profile_id: Optional[int],
        base_url: Optional[str] = None,
        page_size: Optional[int] = None
    ):
        if profile_id is None:
            raise ConfigError("Provide a Profile ID.", context={"field": "profileId"})
        self.client = client
        self.report_id = report_id
        self.profile_id = profile_id
        self.base_url = (base_url or settings.CM_API_BASE_URL).rstrip("/")
        self.page_size = page_size or settings.REPORT_PAGE_SIZE

    @property
    def report_url(self) -> str:
        return f"{self.base_url}/userprofiles/{self.profile_id}/reports/{self.report_id}"

    async def get_report_name(self) -> str:
        data = await request_json(self.client, self.report_url)
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise MalformedResponseError(
                "Invalid or empty API response.",
                context={"url": self.report_url}
            )
        return name

    async def get_report_files(self) -> Dict[int, str]:
        """
        Page through the report's files, newest first.

        Returns:
            Mapping of file ID to download URL for available files
        """
        url = f"{self.report_url}/files"
        reports: Dict[int, str] = {}
        seen_file_ids: Set[int] = set()
        page_token = ""

        while True:
            params: Dict[str, Any] = {
                "maxResults": self.page_size,
                "sortField": "LAST_MODIFIED_TIME",
                "sortOrder": "DESCENDING",
            }
            if page_token:
                params["pageToken"] = page_token

            data = await request_json(self.client, url, params=params)
            items = data.get("items") or []
            if not items:
                break

            repeated = False
            for item in items:
                file_id = self._parse_file_id(item, url)
                if file_id in seen_file_ids:
                    repeated = True
                    break
                seen_file_ids.add(file_id)

                if item.get("status") != self.REPORT_AVAILABLE_STATE:
                    logger.debug(f"Skipping file {file_id} with status {item.get('status')}")
                    continue

                api_url = (item.get("urls") or {}).get("apiUrl")
                if not api_url:
                    logger.warning(f"Report file {file_id} has no download URL")
                    continue
                reports[file_id] = api_url

            if repeated:
                logger.warning("Report file listing repeated itself; stopping pagination.")
                break

            page_token = data.get("nextPageToken") or ""
            if not page_token:
                break

        logger.info(f"Found {len(reports)} available files out of {len(seen_file_ids)}")
        return reports

    @staticmethod
    def _parse_file_id(item: Any, url: str) -> int:
        try:
            return int(item["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                "Report file is missing a valid ID.",
                context={"url": url},
                original_exception=e
            )
