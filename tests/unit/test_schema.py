"""
Unit tests for schema building, comparison and reconciliation
"""

import pytest

from core.exceptions import ConfigError, MalformedReportError, SchemaDriftError
from ingestion.schema import (
    DEFAULT_RENAME_PATTERNS,
    RenamePattern,
    SchemaField,
    SchemaReconciler,
    build_schema,
    compare_schema,
    field_names,
    load_rename_patterns,
    migrate_names,
)


def make_schema(*names):
    return tuple(SchemaField(name) for name in names)


class TestBuildSchema:
    """Test schema generation from report headers"""

    def test_normalizes_and_appends_tracking_column(self):
        schema = build_schema(["Date", "Campaign ID", "Impressions"])

        assert field_names(schema) == ["date", "campaign_id", "impressions", "file_id"]
        assert all(field.field_type == "STRING" for field in schema)

    def test_collisions_get_numbered_suffixes(self):
        schema = build_schema(["Clicks", "clicks", "CLICKS"])

        assert field_names(schema) == ["clicks", "clicks_1", "clicks_2", "file_id"]

    def test_suffix_skips_names_already_taken(self):
        schema = build_schema(["a b", "a_b_1", "a-b"])

        assert field_names(schema) == ["a_b", "a_b_1", "a_b_2", "file_id"]

    def test_tracking_column_is_reserved(self):
        schema = build_schema(["File ID", "Date"])

        assert field_names(schema) == ["file_id_1", "date", "file_id"]

    def test_names_are_unique(self):
        schema = build_schema(["x", "X", "x!", "x?", "file id"])
        names = field_names(schema)

        assert len(names) == len(set(names))
        assert names[-1] == "file_id"

    def test_empty_header_raises(self):
        with pytest.raises(MalformedReportError):
            build_schema([])


class TestCompareSchema:
    """Test positional schema comparison"""

    def test_equal_schemas(self):
        assert compare_schema(make_schema("a", "b"), make_schema("a", "b"))

    def test_order_matters(self):
        assert not compare_schema(make_schema("a", "b"), make_schema("b", "a"))

    def test_length_mismatch(self):
        assert not compare_schema(make_schema("a", "b"), make_schema("a"))

    def test_type_mismatch(self):
        left = (SchemaField("a", "STRING"),)
        right = (SchemaField("a", "INTEGER"),)

        assert not compare_schema(left, right)


class TestMigrateNames:
    """Test legacy column renaming"""

    def test_renames_legacy_product_names(self):
        schema = make_schema("dcm_campaign", "cm_site", "dbm_advertiser", "date", "file_id")

        migrated = migrate_names(schema, DEFAULT_RENAME_PATTERNS)

        assert field_names(migrated) == [
            "cm360_campaign", "cm360_site", "dv360_advertiser", "date", "file_id"
        ]

    def test_current_names_are_left_alone(self):
        schema = make_schema("cm360_campaign", "dv360_advertiser", "file_id")

        assert migrate_names(schema, DEFAULT_RENAME_PATTERNS) is None

    def test_replaces_every_occurrence(self):
        schema = make_schema("dbm_to_dbm")

        migrated = migrate_names(schema, DEFAULT_RENAME_PATTERNS)

        assert field_names(migrated) == ["dv360_to_dv360"]

    def test_keeps_field_types_and_input(self):
        schema = (SchemaField("dbm_cost", "FLOAT"),)

        migrated = migrate_names(schema, DEFAULT_RENAME_PATTERNS)

        assert migrated == (SchemaField("dv360_cost", "FLOAT"),)
        assert schema == (SchemaField("dbm_cost", "FLOAT"),)

    def test_custom_patterns(self):
        schema = make_schema("old_clicks", "date")

        migrated = migrate_names(schema, [RenamePattern(r"^old_", "")])

        assert field_names(migrated) == ["clicks", "date"]


class TestLoadRenamePatterns:
    """Test rename pattern configuration"""

    def test_defaults_when_not_configured(self):
        assert load_rename_patterns(None) == DEFAULT_RENAME_PATTERNS
        assert load_rename_patterns("") == DEFAULT_RENAME_PATTERNS

    def test_parses_json_list(self):
        patterns = load_rename_patterns('[{"pattern": "foo", "replacement": "bar"}]')

        assert patterns == (RenamePattern("foo", "bar"),)

    @pytest.mark.parametrize("raw", [
        "not json",
        '[{"pattern": "foo"}]',
        '[{"pattern": "(", "replacement": "x"}]',
        "42",
    ])
    def test_invalid_configuration_raises(self, raw):
        with pytest.raises(ConfigError):
            load_rename_patterns(raw)


class TestSchemaReconciler:
    """Test header reconciliation against the destination table"""

    @pytest.mark.asyncio
    async def test_creates_table_when_missing(self, fake_warehouse):
        reconciler = SchemaReconciler(fake_warehouse, "my_report")

        schema = await reconciler.reconcile(["Date", "Clicks"], None)

        assert field_names(schema) == ["date", "clicks", "file_id"]
        assert fake_warehouse.created == ["my_report"]
        assert fake_warehouse.tables["my_report"] == schema

    @pytest.mark.asyncio
    async def test_matching_schema_is_kept(self, fake_warehouse):
        table_schema = make_schema("date", "clicks", "file_id")
        reconciler = SchemaReconciler(fake_warehouse, "my_report")

        schema = await reconciler.reconcile(["Date", "Clicks"], table_schema)

        assert schema is table_schema
        assert fake_warehouse.created == []

    @pytest.mark.asyncio
    async def test_legacy_table_matches_after_rename(self, fake_warehouse):
        table_schema = make_schema("date", "dbm_advertiser", "file_id")
        reconciler = SchemaReconciler(fake_warehouse, "my_report")

        schema = await reconciler.reconcile(["Date", "DV360 Advertiser"], table_schema)

        # Table keeps its stored names
        assert schema == table_schema

    @pytest.mark.asyncio
    async def test_drift_raises(self, fake_warehouse):
        table_schema = make_schema("date", "clicks", "file_id")
        reconciler = SchemaReconciler(fake_warehouse, "my_report")

        with pytest.raises(SchemaDriftError) as exc_info:
            await reconciler.reconcile(["Date", "Impressions"], table_schema)

        assert exc_info.value.message == "Schema does not match."
        assert exc_info.value.context["report_fields"] == ["date", "impressions", "file_id"]

    @pytest.mark.asyncio
    async def test_renamed_table_that_still_differs_raises(self, fake_warehouse):
        table_schema = make_schema("date", "dbm_advertiser", "file_id")
        reconciler = SchemaReconciler(fake_warehouse, "my_report")

        with pytest.raises(SchemaDriftError):
            await reconciler.reconcile(["Date", "Partner"], table_schema)
