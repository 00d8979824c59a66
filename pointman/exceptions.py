"""Pointman exceptions.

Every error carries a stable ``code`` so transport layers can map it
without string matching:

    ValidationError     bad input, rejected before any mutation
    NotFound            unknown receipt, user, establishment or subscription
    AlreadyClaimed      receipt was claimed before
    InsufficientPoints  balance lower than the requested deduction
    IdentifierExhausted no unused receipt identifier after N attempts
    StorageConflict     concurrent write detected, retry the operation
    QuotaExceeded       plan limit reached for a quota-gated action
"""


class BaseError(Exception):
    """
    Structured exception with code, message and context data.

    Usage:
        try:
            ReceiptService.claim("Ab3dEf7H", establishment.pk, user.pk)
        except PointmanError as e:
            if e.code == "RECEIPT_ALREADY_CLAIMED":
                handle_duplicate()
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"{self.code}: {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class PointmanError(BaseError):
    """Base class for all ledger and entitlement errors."""

    default_code = "POINTMAN_ERROR"

    _default_messages = {
        "INVALID_AMOUNT": "Amount must be a positive integer",
        "INVALID_PAGE": "Invalid page or page size",
        "INVALID_PLAN": "Invalid subscription plan",
        "INVALID_ACTION": "Unknown action type",
        "INVALID_ENTRY_TYPE": "Unknown history entry type",
        "VALIDATION_FAILED": "Validation failed",
        "PLAN_DOWNGRADE_DENIED": "Cannot downgrade plan through an upgrade",
        "ALREADY_FREE": "Subscription is already on the free plan",
        "HISTORY_IMMUTABLE": "Points history entries cannot be changed",
        "RECEIPT_NOT_FOUND": "Receipt not found",
        "USER_NOT_FOUND": "User not found",
        "ESTABLISHMENT_NOT_FOUND": "Establishment not found",
        "SUBSCRIPTION_NOT_FOUND": "Subscription not found",
        "RECEIPT_ALREADY_CLAIMED": "Receipt already claimed",
        "INSUFFICIENT_POINTS": "Insufficient points",
        "IDENTIFIER_EXHAUSTED": "Failed to generate unique receipt ID. Please try again.",
        "STORAGE_CONFLICT": "Concurrent update detected",
        "QUOTA_EXCEEDED": "Subscription limit reached",
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        super().__init__(code or self.default_code, message, **data)


class ValidationError(PointmanError):
    default_code = "VALIDATION_FAILED"


class NotFound(PointmanError):
    default_code = "RECEIPT_NOT_FOUND"


class AlreadyClaimed(PointmanError):
    default_code = "RECEIPT_ALREADY_CLAIMED"


class InsufficientPoints(PointmanError):
    default_code = "INSUFFICIENT_POINTS"


class IdentifierExhausted(PointmanError):
    default_code = "IDENTIFIER_EXHAUSTED"


class StorageConflict(PointmanError):
    default_code = "STORAGE_CONFLICT"


class QuotaExceeded(PointmanError):
    """Raised by quota-gated actions. ``data["usage"]`` holds the report."""

    default_code = "QUOTA_EXCEEDED"
