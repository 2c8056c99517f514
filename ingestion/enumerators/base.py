"""
Shared HTTP handling for the reporting API enumerators.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from core.exceptions import (
    AuthenticationError,
    MalformedResponseError,
    ResourceNotFoundError,
    TransportError,
)

logger = logging.getLogger(__name__)


class ReportEnumerator(Protocol):
    async def get_report_name(self) -> str:
        ...

    async def get_report_files(self) -> Dict[int, str]:
        ...


async def request_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    GET a reporting API resource and decode the JSON body.

    Raises:
        AuthenticationError: HTTP 401/403
        ResourceNotFoundError: HTTP 404
        TransportError: Connection failures and other HTTP errors
        MalformedResponseError: Body is not a JSON object
    """
    logger.debug(f"GET {url} params={params}")

    try:
        response = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise TransportError(
            f"Request to {url} failed",
            context={"url": url},
            original_exception=e
        )

    if response.status_code in (401, 403):
        raise AuthenticationError(
            f"Authentication failed for {url}",
            context={"status_code": response.status_code, "url": url}
        )

    if response.status_code == 404:
        raise ResourceNotFoundError(
            "Report not found.",
            context={"status_code": 404, "url": url}
        )

    if response.status_code >= 400:
        raise TransportError(
            f"HTTP {response.status_code} from {url}",
            context={
                "status_code": response.status_code,
                "url": url,
                "response_body": response.text[:500]
            }
        )

    try:
        data = response.json()
    except ValueError as e:
        raise MalformedResponseError(
            "Invalid or empty API response.",
            context={"url": url},
            original_exception=e
        )

    if not isinstance(data, dict):
        raise MalformedResponseError(
            "Invalid or empty API response.",
            context={"url": url}
        )

    return data
