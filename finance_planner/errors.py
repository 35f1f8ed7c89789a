from __future__ import annotations


class FinancePlannerError(Exception):
    """Base class for domain errors raised by the services."""


class LedgerError(FinancePlannerError):
    """A balance adjustment could not be applied; the unit of work must abort."""


class AccountNotFoundError(LedgerError):
    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class InvalidTransactionError(FinancePlannerError):
    pass


class OwnershipError(FinancePlannerError):
    """A record references an entity owned by a different user."""


class NotFoundError(FinancePlannerError):
    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidCategoryError(FinancePlannerError):
    pass


class ConflictError(FinancePlannerError):
    """The request conflicts with existing data (e.g. deleting a referenced row)."""


class InvalidAmountError(FinancePlannerError):
    """A money value is missing or not a number."""
