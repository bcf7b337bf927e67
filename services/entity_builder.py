"""
Entity Builder - Turn a spreadsheet row into a candidate database entity.

An entity is built in layers, later layers overriding earlier ones:

    1. default values (dynamic defaults resolved at build time)
    2. column assignments from the raw row (cells as text, see ``cell_text``)
    3. value mappings (exact match replacement)
    4. trimming of every string value (optional, enabled by default)

Nothing here raises on missing data; an unmapped or absent cell simply
yields ``None`` and is left for the required field validation.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from services.errors import ConfigurationError

DYNAMIC_MARKER_PATTERN = re.compile(r'^\{\{\s*(\w+)\s*\}\}$')


@dataclass(frozen=True)
class LiteralValue:
    """Default taken verbatim from configuration."""
    value: str

    def resolve(self, now: datetime) -> str:
        return self.value


@dataclass(frozen=True)
class CurrentTimestamp:
    """Unix epoch seconds at build time (TYPO3 tstamp/crdate style)."""

    def resolve(self, now: datetime) -> str:
        return str(int(now.timestamp()))


@dataclass(frozen=True)
class CurrentDateTime:
    """Date and time at build time, ``YYYY-MM-DD HH:MM:SS``."""

    def resolve(self, now: datetime) -> str:
        return now.strftime('%Y-%m-%d %H:%M:%S')


@dataclass(frozen=True)
class CurrentDate:
    """Date at build time, ``YYYY-MM-DD``."""

    def resolve(self, now: datetime) -> str:
        return now.strftime('%Y-%m-%d')


DefaultSource = Union[LiteralValue, CurrentTimestamp, CurrentDateTime, CurrentDate]

# marker name -> resolver
DYNAMIC_RESOLVERS: Dict[str, DefaultSource] = {
    'timestamp': CurrentTimestamp(),
    'now': CurrentDateTime(),
    'datetime': CurrentDateTime(),
    'date': CurrentDate(),
}


@dataclass(frozen=True)
class DefaultValue:
    """Default value rule: field plus a literal or dynamic resolver."""
    field: str
    source: DefaultSource

    def resolve(self, now: datetime) -> str:
        return self.source.resolve(now)


@dataclass(frozen=True)
class ValueMapping:
    """Replace ``source`` with ``target`` when ``field`` equals ``source`` exactly."""
    field: str
    source: str
    target: str


def parse_default_value(default: str) -> DefaultValue:
    """
    Parse ``field:value``. Values of the form ``{{name}}`` select a dynamic resolver.

    Unknown marker names are kept as literal text.
    """
    if ':' not in default:
        raise ConfigurationError(f"Invalid default value '{default}', expected 'field:value'")

    field, value = default.split(':', 1)
    if not field:
        raise ConfigurationError(f"Invalid default value '{default}', field name is empty")

    match = DYNAMIC_MARKER_PATTERN.match(value)
    if match and match.group(1).lower() in DYNAMIC_RESOLVERS:
        return DefaultValue(field, DYNAMIC_RESOLVERS[match.group(1).lower()])

    return DefaultValue(field, LiteralValue(value))


def parse_value_mapping(mapping: str) -> ValueMapping:
    """Parse ``field:source_value:target_value``; the target may contain colons."""
    parts = mapping.split(':', 2)
    if len(parts) != 3 or not parts[0]:
        raise ConfigurationError(
            f"Invalid value mapping '{mapping}', expected 'field:source_value:target_value'"
        )
    return ValueMapping(*parts)


def cell_text(value: Any) -> Optional[str]:
    """
    Textual form of a cell value.

    Entities only hold text (or ``None``), so statements bind the same type
    whatever the workbook stored: integral floats lose their ``.0``, booleans
    become ``1``/``0``, dates use ``YYYY-MM-DD [HH:MM:SS]``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(value, date):
        return value.strftime('%Y-%m-%d')
    return str(value)


class EntityBuilder:
    """
    Build candidate entities for a single import configuration.

    The builder is stateless between rows; ``clock`` is called once per entity
    so dynamic defaults reflect the moment each row is built.
    """

    def __init__(
        self,
        defaults: Sequence[DefaultValue] = (),
        value_mappings: Sequence[ValueMapping] = (),
        trim: bool = True,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.defaults = list(defaults)
        self.value_mappings = list(value_mappings)
        self.trim = trim
        self.clock = clock

    def build(self, row: Mapping[str, Any], column_assignments: Mapping[str, str]) -> Dict[str, Any]:
        """
        Build the entity for one raw row.

        Args:
            row: Source column name -> cell value
            column_assignments: Database column name -> source column name

        Returns:
            Database column name -> str or None
        """
        entity = self.default_entity()

        for db_column, source_column in column_assignments.items():
            entity[db_column] = cell_text(row.get(source_column))

        return self.prepare_entity(entity)

    def default_entity(self) -> Dict[str, Any]:
        """Seed entity with default values, resolving dynamic ones now."""
        now = self.clock()
        return {default.field: default.resolve(now) for default in self.defaults}

    def prepare_entity(self, entity: Dict[str, Any]) -> Dict[str, Any]:
        """Apply value mappings, then trim values if enabled."""
        for mapping in self.value_mappings:
            if mapping.field in entity and cell_text(entity[mapping.field]) == mapping.source:
                entity[mapping.field] = mapping.target

        if self.trim:
            entity = {
                key: value.strip() if isinstance(value, str) else value
                for key, value in entity.items()
            }

        return entity
