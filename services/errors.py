"""
Exception types raised by the import services.

Database failures are not wrapped: SQLAlchemy errors propagate as-is to the
per-file boundary in the import service.
"""


class ConfigurationError(ValueError):
    """Invalid import options or a mismatch between options and the target table."""


class ColumnNotFoundError(ConfigurationError):
    """A configured database column does not exist in the target table."""

    def __init__(self, column: str, table_name: str):
        self.column = column
        self.table_name = table_name
        super().__init__(
            f"There is no column with name '{column}' on table '{table_name}'."
        )


class StorageError(OSError):
    """A routing directory cannot be created or written to."""


class TableNotFoundError(ConfigurationError):
    """The target table does not exist in the connected database."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' does not exist.")
