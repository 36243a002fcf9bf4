"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "domain_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidError(DomainException):
    """Malformed or out-of-range input"""

    code = "invalid"


class AlreadyAttributedError(InvalidError):
    """Payment already carries attributions"""

    code = "already_attributed"


class NotFoundError(DomainException):
    """Entity is absent or outside the household scope"""

    code = "not_found"


class HouseholdNotFoundError(NotFoundError):
    pass


class PaymentNotFoundError(NotFoundError):
    pass


class IncomeEventNotFoundError(NotFoundError):
    pass


class AttributionNotFoundError(NotFoundError):
    pass


class CategoryInvalidError(NotFoundError):
    """Spending category does not resolve to an active category in the household"""

    code = "category_invalid"


class PaymentStateError(DomainException):
    """Operation is not legal in the payment's current status"""

    code = "invalid_state"


class ImmutableStateError(PaymentStateError):
    code = "immutable_state"


class AlreadySettledError(PaymentStateError):
    code = "already_settled"


class NotSettledError(PaymentStateError):
    code = "not_settled"


class PaymentCancelledError(PaymentStateError):
    code = "cancelled"


class LedgerError(DomainException):
    """Attribution would break a conservation invariant"""

    code = "ledger_error"


class OverAttributedError(LedgerError):
    code = "over_attributed"


class InsufficientIncomeError(LedgerError):
    code = "insufficient_income"


class ConflictError(DomainException):
    """Concurrent modification detected; retry the whole operation"""

    code = "conflict"
    retryable = True
