"""Error types for report input handling."""

from __future__ import annotations


class ReportError(Exception):
    """Base class for all studioreport errors."""


class LedgerInputError(ReportError):
    """A financial or task row carries a value that cannot be aggregated.

    Attributes:
        table: Logical table the row came from (``expenses``, ``invoices`` ...).
        column: Offending column.
        value: The raw value.
    """

    def __init__(self, table: str, column: str, value: object) -> None:
        self.table = table
        self.column = column
        self.value = value
        super().__init__(f"Non-numeric {table}.{column} value: {value!r}")


class ReportInputError(ReportError):
    """The rows supplied for a client report could not be turned into a view.

    Attributes:
        project_id: Project the report was being built for, if known.
    """

    def __init__(self, message: str, project_id: str | None = None) -> None:
        self.project_id = project_id
        full = message
        if project_id is not None:
            full += f" (project {project_id})"
        super().__init__(full)
