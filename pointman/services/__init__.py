"""Pointman services.

- ReceiptService: issue and claim receipts
- LedgerService: balances, deductions, history
- SubscriptionService: plan lifecycle and entitlements
- UsageService: quota checks and counters
"""

from pointman.services.ledger import LedgerService
from pointman.services.receipts import ReceiptService
from pointman.services.subscriptions import SubscriptionService
from pointman.services.usage import UsageService

__all__ = ["LedgerService", "ReceiptService", "SubscriptionService", "UsageService"]
