"""
Import options - Parsed and validated import configuration.

Raw CLI strings are parsed once, before any file is opened, so malformed
options fail the whole run instead of every file.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from services.column_resolver import parse_column_mapping
from services.entity_builder import (
    DefaultValue, ValueMapping, parse_default_value, parse_value_mapping
)
from services.errors import ConfigurationError


@dataclass(frozen=True)
class ImportOptions:
    """Everything that controls how rows become entities in one table."""
    table_name: str
    unique_fields: List[str]
    column_mappings: List[Tuple[str, str]] = field(default_factory=list)
    value_mappings: List[ValueMapping] = field(default_factory=list)
    defaults: List[DefaultValue] = field(default_factory=list)
    trim: bool = True
    success_directory: Optional[str] = None
    error_directory: Optional[str] = None

    def __post_init__(self):
        if not self.table_name:
            raise ConfigurationError("Table name must not be empty")
        if not self.unique_fields:
            # an empty list would make every lookup match the whole table
            raise ConfigurationError("unique-field list must be non-empty")
        if any(not f for f in self.unique_fields):
            raise ConfigurationError("unique-field names must not be empty")

    @classmethod
    def from_cli(
        cls,
        table_name: str,
        unique_fields: Sequence[str],
        columns: Sequence[str] = (),
        value_mappings: Sequence[str] = (),
        defaults: Sequence[str] = (),
        trim: bool = True,
        success_directory: Optional[str] = None,
        error_directory: Optional[str] = None
    ) -> 'ImportOptions':
        """Build options from raw ``db:source``, ``field:src:tgt`` and ``field:value`` strings."""
        return cls(
            table_name=table_name,
            unique_fields=list(unique_fields),
            column_mappings=[parse_column_mapping(c) for c in columns],
            value_mappings=[parse_value_mapping(m) for m in value_mappings],
            defaults=[parse_default_value(d) for d in defaults],
            trim=trim,
            success_directory=success_directory,
            error_directory=error_directory,
        )

    @property
    def default_fields(self) -> List[str]:
        return [d.field for d in self.defaults]
