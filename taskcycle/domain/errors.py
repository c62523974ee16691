from __future__ import annotations

from datetime import date


class RecurrenceError(Exception):
    """Base class for every error raised by the recurrence engine."""


class ValidationError(RecurrenceError):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class NoFutureOccurrence(RecurrenceError):
    def __init__(self, definition_id: str | None, anchor: date) -> None:
        super().__init__(
            f"Recurring task {definition_id} has no occurrence after {anchor.isoformat()}"
        )
        self.definition_id = definition_id
        self.anchor = anchor


class ProjectionError(RecurrenceError):
    """The task template could not be copied onto a new instance."""


class PersistenceError(RecurrenceError):
    """Raised by store adapters when a read or write fails."""


class DefinitionNotFound(PersistenceError):
    def __init__(self, definition_id: str) -> None:
        super().__init__(f"Recurring task {definition_id} not found")
        self.definition_id = definition_id


class RecurrenceInvariantError(RecurrenceError):
    """The calculator could not produce a date strictly after its anchor."""
