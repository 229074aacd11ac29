# Overview: Error taxonomy shared by the ledger engine and its callers.

from __future__ import annotations


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., settling a debt twice)."""


class NotFoundError(LookupError):
    """404-level: an operation referenced an id absent from its collection."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class AlreadyPaidError(ConflictError):
    """Settlement attempted on a debt that is already in the terminal paid state."""

    def __init__(self, debt_id: str):
        super().__init__("Debt is already marked as paid")
        self.debt_id = debt_id


class SaleError(ValueError):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(SaleError, ConflictError):
    """A sale line asks for more units than the product or variant holds."""


def coerce_choice(enum_cls, value, field: str):
    """Read value as a member of enum_cls, raising ValidationError for anything else."""
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"{field} must be one of: {', '.join(m.value for m in enum_cls)}")
