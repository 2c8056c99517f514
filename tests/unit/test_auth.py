"""
Unit tests for Google credential helpers
"""

from unittest.mock import Mock, patch

import pytest
from google.auth import impersonated_credentials
from google.auth.exceptions import DefaultCredentialsError, RefreshError

from core.exceptions import AuthenticationError
from ingestion.auth import build_credentials, get_auth_headers, get_default_project_id

SCOPES = ("https://www.googleapis.com/auth/doubleclickbidmanager",)


class TestBuildCredentials:
    """Test credential construction"""

    def test_default_credentials(self):
        credentials = Mock()

        with patch("google.auth.default", return_value=(credentials, "proj")) as default:
            assert build_credentials(SCOPES) is credentials

        default.assert_called_once_with(scopes=list(SCOPES))

    def test_impersonation(self):
        source = Mock()

        with patch("google.auth.default", return_value=(source, "proj")), \
                patch.object(impersonated_credentials, "Credentials") as impersonated:
            credentials = build_credentials(SCOPES, email="svc@proj.iam.gserviceaccount.com")

        assert credentials is impersonated.return_value
        impersonated.assert_called_once_with(
            source_credentials=source,
            target_principal="svc@proj.iam.gserviceaccount.com",
            target_scopes=list(SCOPES),
        )

    def test_missing_default_credentials(self):
        with patch("google.auth.default", side_effect=DefaultCredentialsError("none")):
            with pytest.raises(AuthenticationError):
                build_credentials(SCOPES)


class TestGetAuthHeaders:
    """Test token refresh"""

    @pytest.mark.asyncio
    async def test_bearer_header(self):
        credentials = Mock(token="abc")

        headers = await get_auth_headers(credentials)

        assert headers == {"Authorization": "Bearer abc"}
        credentials.refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_refresh_failure(self):
        credentials = Mock()
        credentials.refresh.side_effect = RefreshError("expired")

        with pytest.raises(AuthenticationError):
            await get_auth_headers(credentials)


def test_default_project_id():
    with patch("google.auth.default", return_value=(Mock(), "ambient-project")):
        assert get_default_project_id() == "ambient-project"


def test_default_project_id_without_credentials():
    with patch("google.auth.default", side_effect=DefaultCredentialsError("none")):
        assert get_default_project_id() is None
