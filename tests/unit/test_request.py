"""
Unit tests for ingestion request parsing
"""

import pytest

from core.exceptions import ConfigError
from schemas.request import IngestionConfig, decode_body, parse_body

DV_BODY = {"product": "DV", "reportId": 7, "datasetName": "reports", "projectId": "proj"}


class TestDecodeBody:
    """Test request body decoding"""

    def test_decodes_bytes(self):
        assert decode_body(b'{"product": "DV"}') == {"product": "DV"}

    def test_decodes_string(self):
        assert decode_body('{"product": "DV"}') == {"product": "DV"}

    def test_passes_mapping_through(self):
        assert decode_body({"product": "CM"}) == {"product": "CM"}

    @pytest.mark.parametrize("body", [None, b"", "", {}])
    def test_empty_body(self, body):
        with pytest.raises(ConfigError) as exc_info:
            decode_body(body)

        assert exc_info.value.message == "Request body is empty."

    @pytest.mark.parametrize("body", [b"{not json", "[1, 2]", "42"])
    def test_malformed_body(self, body):
        with pytest.raises(ConfigError) as exc_info:
            decode_body(body)

        assert exc_info.value.message == "Request body is malformed."


class TestParseBody:
    """Test request validation and defaults"""

    def test_defaults(self):
        config = parse_body(DV_BODY)

        assert config.product == "DV"
        assert config.report_id == 7
        assert config.dataset_name == "reports"
        assert config.project_id == "proj"
        assert config.profile_id is None
        assert config.single is True
        assert config.ignore == ()
        assert config.newest is False
        assert config.replace is False
        assert config.email is None

    def test_product_is_case_insensitive(self):
        assert parse_body({**DV_BODY, "product": "dv"}).product == "DV"

    def test_numeric_strings_are_accepted(self):
        config = parse_body({**DV_BODY, "product": "CM", "reportId": "12", "profileId": "34"})

        assert config.report_id == 12
        assert config.profile_id == 34

    def test_ignore_keeps_integers_sorted(self):
        config = parse_body({**DV_BODY, "ignore": ["30", "abc", 10, None, "20"]})

        assert config.ignore == (10, 20, 30)

    def test_ignore_that_is_not_a_list(self):
        assert parse_body({**DV_BODY, "ignore": "1,2"}).ignore == ()

    def test_empty_email_means_default_account(self):
        assert parse_body({**DV_BODY, "email": ""}).email is None

    def test_mode_flags(self):
        config = parse_body({**DV_BODY, "single": False, "newest": True, "replace": True})

        assert (config.single, config.newest, config.replace) == (False, True, True)

    @pytest.mark.parametrize("value,expected", [
        (None, False),
        ("abc", True),
        ("", False),
        (0, False),
        (1, True),
        ([], False),
    ])
    def test_mode_flags_use_truthiness(self, value, expected):
        config = parse_body({**DV_BODY, "single": value, "newest": value, "replace": value})

        assert (config.single, config.newest, config.replace) == (expected, expected, expected)

    def test_missing_flags_keep_defaults(self):
        config = parse_body(DV_BODY)

        assert (config.single, config.newest, config.replace) == (True, False, False)

    def test_config_is_immutable(self):
        config = parse_body(DV_BODY)

        with pytest.raises(Exception):
            config.report_id = 8

    @pytest.mark.parametrize("body", [
        {**DV_BODY, "product": "SA360"},
        {**DV_BODY, "product": 5},
        {k: v for k, v in DV_BODY.items() if k != "product"},
        {k: v for k, v in DV_BODY.items() if k != "reportId"},
        {**DV_BODY, "reportId": "abc"},
        {**DV_BODY, "datasetName": ""},
        {**DV_BODY, "product": "CM"},
    ])
    def test_invalid_fields(self, body):
        with pytest.raises(ConfigError) as exc_info:
            parse_body(body)

        assert exc_info.value.message.startswith("Invalid request field")

    def test_project_from_resolver(self):
        body = {k: v for k, v in DV_BODY.items() if k != "projectId"}

        config = parse_body(body, default_project_id=lambda: "ambient-project")

        assert config.project_id == "ambient-project"

    def test_body_project_wins_over_resolver(self):
        config = parse_body(DV_BODY, default_project_id=lambda: "ambient-project")

        assert config.project_id == "proj"

    def test_missing_project(self):
        body = {**DV_BODY, "projectId": ""}

        with pytest.raises(ConfigError) as exc_info:
            parse_body(body, default_project_id=lambda: None)

        assert exc_info.value.message == "Provide a GCP Project ID."

    def test_populate_by_field_name(self):
        config = IngestionConfig(
            product="CM", report_id=1, profile_id=2, dataset_name="d", project_id="p"
        )

        assert config.profile_id == 2
