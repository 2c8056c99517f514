"""
BigQuery-safe identifiers for tables and columns
"""

import re

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


def build_valid_name(raw: str) -> str:
    """Replace every non-alphanumeric character with `_` and lowercase."""
    return _INVALID_NAME_CHARS.sub("_", raw).lower()


# Tracks the originating report file of every row
FILE_ID_COLUMN = build_valid_name("File ID")


def build_lookback_query(table_path: str) -> str:
    """Query for the distinct file IDs already loaded into a table."""
    return (
        f"SELECT DISTINCT {FILE_ID_COLUMN} "
        f"FROM `{table_path}` "
        f"ORDER BY {FILE_ID_COLUMN} ASC"
    )
