"""
Google credentials for the reporting APIs
"""

import asyncio
import logging
from typing import Dict, Iterable, Optional

import google.auth
from google.auth import impersonated_credentials
from google.auth.credentials import Credentials
from google.auth.exceptions import DefaultCredentialsError, GoogleAuthError
from google.auth.transport.requests import Request

from core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def build_credentials(scopes: Iterable[str], email: Optional[str] = None) -> Credentials:
    """
    Application default credentials, optionally impersonating a service account.

    Args:
        scopes: OAuth scopes of the reporting API
        email: Service account to impersonate
    """
    scopes = list(scopes)
    try:
        logger.info("Initializing the default API client.")
        credentials, _ = google.auth.default(scopes=scopes)
    except DefaultCredentialsError as e:
        raise AuthenticationError(
            "Application default credentials are not available",
            original_exception=e
        )

    if not email:
        return credentials

    logger.info("Initializing the impersonated API client.")
    return impersonated_credentials.Credentials(
        source_credentials=credentials,
        target_principal=email,
        target_scopes=scopes,
    )


async def get_auth_headers(credentials: Credentials) -> Dict[str, str]:
    """Refresh credentials and return bearer authorization headers."""
    try:
        await asyncio.to_thread(credentials.refresh, Request())
    except GoogleAuthError as e:
        raise AuthenticationError(
            "Failed to acquire an access token",
            original_exception=e
        )
    return {"Authorization": f"Bearer {credentials.token}"}


def get_default_project_id() -> Optional[str]:
    """GCP project of the application default credentials, if any."""
    try:
        _, project_id = google.auth.default()
    except DefaultCredentialsError:
        logger.warning("No application default credentials; default project unknown")
        return None
    return project_id
