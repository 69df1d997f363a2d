from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import ValidationReport


class PalletWorkflowError(Exception):
    """Base class for every error raised at the order store boundary."""


class InvalidTransitionError(PalletWorkflowError):
    """A gate predicate or transition rule rejected the requested operation."""

    def __init__(self, reason: str, *, order_number: str | None = None) -> None:
        self.reason = reason
        self.order_number = order_number
        message = f"{order_number}: {reason}" if order_number else reason
        super().__init__(message)


class NotFoundError(PalletWorkflowError, LookupError):
    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class DuplicateError(PalletWorkflowError):
    def __init__(self, field_name: str, value: str) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"Duplicate {field_name}: {value}")


class OrderValidationError(PalletWorkflowError, ValueError):
    """Raised when a write would leave an order structurally invalid."""

    def __init__(self, report: ValidationReport, *, context: str = "order") -> None:
        self.report = report
        super().__init__(f"{context} failed validation: " + "; ".join(report.errors))


class ConflictError(PalletWorkflowError):
    """Optimistic concurrency check failed on ``update``."""

    def __init__(self, order_id: str, expected: int, actual: int) -> None:
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Stale write for order {order_id}: expected version {expected}, store has {actual}")


class SchemaVersionError(PalletWorkflowError, ValueError):
    def __init__(self, expected: str, found: str | None) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"Unsupported export schemaVersion {found!r}; expected {expected!r}")
