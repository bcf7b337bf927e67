"""
Column Resolver - Database column to spreadsheet column assignment.

Builds the assignment table used for every row of a file in two named phases:

    1. explicit mappings from ``--column db_column:source_column``
    2. identity mappings for header columns not consumed by phase 1

Phase 2 compares against the *source* side of the table (set difference by
value), so a header column that was explicitly mapped to a differently named
database column is not imported a second time under its own name.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from services.errors import ConfigurationError

logger = logging.getLogger(__name__)


def parse_column_mapping(mapping: str) -> Tuple[str, str]:
    """
    Split a ``db_column:source_column`` string on the first colon.

    The source column may itself contain colons.
    """
    if ':' not in mapping:
        raise ConfigurationError(
            f"Invalid column mapping '{mapping}', expected 'db_column:source_column'"
        )
    db_column, source_column = mapping.split(':', 1)
    if not db_column:
        raise ConfigurationError(f"Invalid column mapping '{mapping}', database column is empty")
    return db_column, source_column


class ColumnResolver:
    """Resolve the database column -> source column assignment for one file."""

    def __init__(self, explicit_mappings: Sequence[Tuple[str, str]] = ()):
        self.explicit_mappings = list(explicit_mappings)

    @classmethod
    def from_strings(cls, mappings: Sequence[str]) -> 'ColumnResolver':
        return cls([parse_column_mapping(m) for m in mappings])

    def resolve(self, file_columns: Sequence[str]) -> Dict[str, str]:
        """
        Build the assignment table for a file header.

        Args:
            file_columns: Column names from the header row of the file

        Returns:
            Mapping of database column name -> source column name
        """
        columns: Dict[str, str] = {}
        self.apply_explicit_mappings(columns)
        self.add_unmapped_columns(columns, file_columns)

        logger.debug(f"Resolved column assignments: {columns}")
        return columns

    def apply_explicit_mappings(self, columns: Dict[str, str]) -> None:
        """
        Phase 1: configured mappings, keyed by database column.

        The same source column may feed several database columns.
        """
        for db_column, source_column in self.explicit_mappings:
            columns[db_column] = source_column

    @staticmethod
    def add_unmapped_columns(columns: Dict[str, str], file_columns: Sequence[str]) -> List[str]:
        """
        Phase 2: identity mappings for every header column not already used as a source.

        Returns the list of columns added.
        """
        mapped_sources = set(columns.values())
        unmapped = [c for c in file_columns if c not in mapped_sources]

        for column in unmapped:
            columns[column] = column

        return unmapped
