"""
Table Gateway - Parameterized access to a single reflected database table.

This is the only place that builds SQL. Table structure is reflected from
the live database, so the importer works against any table without ORM
models.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import MetaData, Table, and_, func, insert, inspect, select, update
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.orm import Session

from services.errors import ColumnNotFoundError, TableNotFoundError

logger = logging.getLogger(__name__)


class TableGateway:
    """
    Database collaborator for the importer.

    Wraps a SQLAlchemy session: statements run inside the session's current
    transaction, which is finished with ``commit()`` or ``rollback()``.
    """

    def __init__(self, db_session: Session):
        """
        Initialize table gateway.

        Args:
            db_session: SQLAlchemy database session
        """
        self.session = db_session
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    def get_table(self, table_name: str) -> Table:
        """Reflect (once) and return the table."""
        if table_name not in self._tables:
            try:
                self._tables[table_name] = Table(
                    table_name, self.metadata, autoload_with=self.session.connection()
                )
            except NoSuchTableError as e:
                raise TableNotFoundError(table_name) from e
            logger.debug(f"Reflected table {table_name}")
        return self._tables[table_name]

    def list_columns(self, table_name: str) -> List[str]:
        """Live column names of a table."""
        inspector = inspect(self.session.connection())
        if not inspector.has_table(table_name):
            raise TableNotFoundError(table_name)
        return [column['name'] for column in inspector.get_columns(table_name)]

    def check_columns(self, table_name: str, columns: Iterable[str]) -> None:
        """Raise ColumnNotFoundError for the first column missing from the table."""
        database_columns = self.list_columns(table_name)
        for column in columns:
            if column not in database_columns:
                raise ColumnNotFoundError(column, table_name)

    def _where(self, table: Table, criteria: Mapping[str, Any]):
        return and_(*[table.c[field] == value for field, value in criteria.items()])

    def count_matching(self, table_name: str, criteria: Mapping[str, Any]) -> int:
        """
        Number of rows equal to ``criteria`` on every given field.

        Empty criteria count the whole table.
        """
        table = self.get_table(table_name)
        query = select(func.count()).select_from(table)
        if criteria:
            query = query.where(self._where(table, criteria))
        return self.session.execute(query).scalar_one()

    def insert(self, table_name: str, values: Mapping[str, Any]) -> None:
        table = self.get_table(table_name)
        self.session.execute(insert(table).values(dict(values)))

    def update(self, table_name: str, values: Mapping[str, Any], criteria: Mapping[str, Any]) -> int:
        """Update rows matching ``criteria``; returns affected row count."""
        table = self.get_table(table_name)
        statement = update(table).values(dict(values))
        if criteria:
            statement = statement.where(self._where(table, criteria))
        result = self.session.execute(statement)
        return result.rowcount

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
