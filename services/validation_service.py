"""
Validation Service - Required field checks for candidate entities.

The unique fields double as required fields: a row that cannot be matched
against existing records is skipped instead of being inserted with blanks.
"""

import logging
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """True for ``None`` and zero-length strings. ``0`` and ``"0"`` are values."""
    return value is None or (isinstance(value, str) and len(value) == 0)


class RequiredFieldValidator:
    """
    Framework-agnostic required field validation.

    Validation failures are not errors: the row is skipped and a diagnostic
    is logged at DEBUG level (visible with ``--verbose``).
    """

    def __init__(self, required_fields: Sequence[str]):
        self.required_fields = list(required_fields)

    def validate(self, row_index: int, entity: Mapping[str, Any]) -> bool:
        """
        Check that every required field is present and not blank.

        Stops at the first failing field.

        Args:
            row_index: 1-based spreadsheet row number (for diagnostics)
            entity: Candidate entity

        Returns:
            True when the row may be imported
        """
        for field in self.required_fields:
            if field not in entity or is_blank(entity[field]):
                self._log_invalid_required_field(row_index, entity, field)
                return False
        return True

    @staticmethod
    def _log_invalid_required_field(row_index: int, entity: Mapping[str, Any], field: str):
        if logger.isEnabledFor(logging.DEBUG):
            snapshot = ','.join('' if v is None else str(v) for v in entity.values())
            logger.debug(f'Error in row #{row_index}, required field "{field}" is not set: {snapshot}')
