"""
Upsert Service - Insert-or-update decision for candidate entities.

Each row costs exactly two statements: one existence query on the unique
fields, then either an UPDATE (using the unique fields as predicate) or an
INSERT of the full entity.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Sequence

from backend.table_gateway import TableGateway

logger = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    """Result of an upsert decision."""
    INSERTED = 'inserted'
    UPDATED = 'updated'


@dataclass
class ImportCounters:
    """Created / updated item counters."""
    created: int = 0
    updated: int = 0

    def record(self, outcome: UpsertOutcome):
        if outcome is UpsertOutcome.INSERTED:
            self.created += 1
        else:
            self.updated += 1

    def add(self, other: 'ImportCounters'):
        self.created += other.created
        self.updated += other.updated


def unique_subset(entity: Mapping[str, Any], unique_fields: Sequence[str]) -> Dict[str, Any]:
    """Project the entity onto the unique fields it contains."""
    return {field: entity[field] for field in unique_fields if field in entity}


class UpsertDecider:
    """Decide insert vs. update by looking up existing rows on the unique fields."""

    def __init__(self, gateway: TableGateway, unique_fields: Sequence[str]):
        self.gateway = gateway
        self.unique_fields = list(unique_fields)

    def entity_exists(self, table_name: str, unique_data: Mapping[str, Any]) -> bool:
        return self.gateway.count_matching(table_name, unique_data) > 0

    def decide(
        self,
        entity: Mapping[str, Any],
        table_name: str,
        counters: ImportCounters
    ) -> UpsertOutcome:
        """
        Update the entry found by the unique fields, or create a new one.

        Args:
            entity: Validated candidate entity
            table_name: Target table
            counters: Counters to record the outcome in

        Returns:
            UpsertOutcome.UPDATED or UpsertOutcome.INSERTED
        """
        unique_data = unique_subset(entity, self.unique_fields)

        if self.entity_exists(table_name, unique_data):
            self.gateway.update(table_name, entity, unique_data)
            outcome = UpsertOutcome.UPDATED
        else:
            self.gateway.insert(table_name, entity)
            outcome = UpsertOutcome.INSERTED

        counters.record(outcome)
        logger.debug(f"{outcome.value.capitalize()} {table_name} entry {unique_data}")
        return outcome
