"""Exception taxonomy for the table engine."""

from __future__ import annotations


class TableKitError(Exception):
    """Base class for every error raised by tablekit."""


class ConfigurationError(TableKitError):
    """A table, column or footer configuration is invalid."""


class DuplicateSessionError(TableKitError):
    """A table id was initialized twice without a teardown in between."""

    def __init__(self, table_id: str) -> None:
        super().__init__(
            f"Table '{table_id}' is already initialized. "
            "Destroy the existing session before attaching again."
        )
        self.table_id = table_id


class UnknownTableError(TableKitError, KeyError):
    """No session exists for the requested table id."""

    def __init__(self, table_id: str) -> None:
        super().__init__(f"No session for table '{table_id}'.")
        self.table_id = table_id

    def __str__(self) -> str:
        return self.args[0]


class MissingRowIdError(TableKitError):
    """A row has none of the fields that identify it."""


class CellValidationError(TableKitError):
    """An edited value failed built-in or external validation."""


class QueryError(TableKitError):
    """A search query could not be compiled."""


class HookError(TableKitError):
    """An external hook rejected or failed an operation."""
