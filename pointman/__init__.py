"""
Pointman - Loyalty points ledger and subscription entitlements.

Usage:
    from pointman import ReceiptService, LedgerService
    from pointman import SubscriptionService, UsageService

    receipt = ReceiptService.issue(establishment.pk, 100)
    result = ReceiptService.claim(receipt.identifier, establishment.pk, user.pk)
    LedgerService.deduct(establishment.pk, user.pk, 40)

    UsageService.check_and_increment(user.pk, "expense")
"""


def __getattr__(name):
    if name == "ReceiptService":
        from pointman.services.receipts import ReceiptService

        return ReceiptService
    if name == "LedgerService":
        from pointman.services.ledger import LedgerService

        return LedgerService
    if name == "SubscriptionService":
        from pointman.services.subscriptions import SubscriptionService

        return SubscriptionService
    if name == "UsageService":
        from pointman.services.usage import UsageService

        return UsageService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["ReceiptService", "LedgerService", "SubscriptionService", "UsageService"]
__version__ = "0.1.0"
