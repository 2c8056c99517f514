"""
Report schema building, comparison and reconciliation with the destination table.

Report files carry their own header row. Every file's header is turned into
a candidate schema (all STRING columns plus the file ID tracking column) and
checked against the destination table before any row is loaded:

- no table yet: the table is created from the candidate schema
- table exists: schemas must match position by position, either directly or
  after renaming legacy column names of the table schema
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from core.exceptions import ConfigError, MalformedReportError, SchemaDriftError
from ingestion.naming import FILE_ID_COLUMN, build_valid_name

if TYPE_CHECKING:
    from ingestion.loaders.bigquery_loader import Warehouse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaField:
    name: str
    field_type: str = "STRING"


Schema = Tuple[SchemaField, ...]


@dataclass(frozen=True)
class RenamePattern:
    pattern: str
    replacement: str

    def apply(self, name: str) -> str:
        return re.sub(self.pattern, self.replacement, name)


# March 2021: reporting APIs renamed fields to match updated product branding
# https://support.google.com/displayvideo/answer/10359125
RENAME_PATTERNS_VERSION = "2021-03"
DEFAULT_RENAME_PATTERNS: Tuple[RenamePattern, ...] = (
    # dcm or cm, not followed by 360 -> cm360
    RenamePattern(r"d?cm(?!360)", "cm360"),
    # dbm -> dv360
    RenamePattern(r"dbm", "dv360"),
)


def build_schema(header_fields: Sequence[str]) -> Schema:
    """
    Build a table schema from report header fields.

    Names are normalized, collisions get `_1`, `_2`, ... suffixes and the
    file ID tracking column is appended as the final field. The tracking
    column name is reserved, so a report column normalizing to it is
    suffixed instead.

    Raises:
        MalformedReportError: If there are no header fields
    """
    if not header_fields:
        raise MalformedReportError("Report header has no fields.")

    used_names = {FILE_ID_COLUMN}
    fields: List[SchemaField] = []

    for raw_name in header_fields:
        valid_name = build_valid_name(raw_name)

        field_name = valid_name
        i = 1
        while field_name in used_names:
            field_name = f"{valid_name}_{i}"
            i += 1
        used_names.add(field_name)

        fields.append(SchemaField(field_name))

    fields.append(SchemaField(FILE_ID_COLUMN))
    return tuple(fields)


def compare_schema(expected: Sequence[SchemaField], candidate: Sequence[SchemaField]) -> bool:
    """Positional comparison of field names and types."""
    if len(expected) != len(candidate):
        return False
    for left, right in zip(expected, candidate):
        if left.name != right.name or left.field_type != right.field_type:
            return False
    return True


def migrate_names(
    schema: Sequence[SchemaField],
    patterns: Iterable[RenamePattern],
) -> Optional[Schema]:
    """
    Rename legacy column names using regex patterns.

    Returns:
        The renamed schema, or None if no field name changed
    """
    patterns = tuple(patterns)
    renamed = False
    fields: List[SchemaField] = []

    for field in schema:
        name = field.name
        for pattern in patterns:
            name = pattern.apply(name)
        if name != field.name:
            renamed = True
        fields.append(SchemaField(name, field.field_type))

    if not renamed:
        return None
    return tuple(fields)


def field_names(schema: Sequence[SchemaField]) -> List[str]:
    return [field.name for field in schema]


def load_rename_patterns(raw: Optional[str]) -> Tuple[RenamePattern, ...]:
    """
    Parse rename patterns from a JSON list of {"pattern", "replacement"} objects.

    Falls back to DEFAULT_RENAME_PATTERNS when nothing is configured.
    """
    if not raw:
        return DEFAULT_RENAME_PATTERNS

    try:
        items = json.loads(raw)
        patterns = tuple(
            RenamePattern(str(item["pattern"]), str(item["replacement"]))
            for item in items
        )
        for pattern in patterns:
            re.compile(pattern.pattern)
    except (ValueError, TypeError, KeyError, re.error) as e:
        raise ConfigError(
            "Invalid rename patterns configuration",
            context={"field": "RENAME_PATTERNS"},
            original_exception=e
        )
    return patterns


class SchemaReconciler:
    """
    Decides the schema of record for a report file at its header row.

    Creates the destination table on first ingestion, otherwise validates
    the report schema against the table schema.
    """

    def __init__(
        self,
        warehouse: "Warehouse",
        table_name: str,
        patterns: Iterable[RenamePattern] = DEFAULT_RENAME_PATTERNS
    ):
        self.warehouse = warehouse
        self.table_name = table_name
        self.patterns = tuple(patterns)

    async def reconcile(
        self,
        header_fields: Sequence[str],
        table_schema: Optional[Schema]
    ) -> Schema:
        """
        Reconcile report header fields with the current table schema.

        Args:
            header_fields: Raw header cells of the report file
            table_schema: Schema of record, or None if the table does not exist

        Returns:
            Schema of record for subsequent report files

        Raises:
            SchemaDriftError: If the schemas cannot be matched
        """
        logger.info("Generating report schema.")
        report_schema = build_schema(header_fields)

        if table_schema is None:
            # Initial ingestion: create table with report schema
            logger.info(f"Creating BigQuery table {self.table_name}.")
            created_schema = await self.warehouse.create_table(self.table_name, report_schema)
            logger.info(f"BigQuery table fields: {field_names(created_schema)}")
            return created_schema

        # Subsequent ingestions: table and report schemas must match
        logger.info("Checking schemas for consistency.")
        if compare_schema(table_schema, report_schema):
            return table_schema

        logger.warning("Schema comparison failed. Attempting to rename old columns.")
        renamed_schema = migrate_names(table_schema, self.patterns)
        if renamed_schema is not None:
            logger.warning("Legacy columns detected in table schema.")
            logger.info(f"Renamed fields: {field_names(renamed_schema)}")
            if compare_schema(renamed_schema, report_schema):
                return table_schema
        else:
            logger.warning("No columns can be renamed.")

        raise SchemaDriftError(
            "Schema does not match.",
            context={
                "table_name": self.table_name,
                "table_fields": field_names(table_schema),
                "report_fields": field_names(report_schema),
            }
        )
