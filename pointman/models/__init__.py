"""Pointman models.

Ledger:
- Establishment, Receipt
- PointsBalance, PointsHistoryEntry, EntryType

Entitlements:
- Subscription, Plan, SubscriptionStatus, PaymentMethod
- UsageTracking
"""

from pointman.models.establishment import Establishment
from pointman.models.receipt import Receipt
from pointman.models.ledger import EntryType, PointsBalance, PointsHistoryEntry
from pointman.models.subscription import (
    PaymentMethod,
    Plan,
    Subscription,
    SubscriptionStatus,
)
from pointman.models.usage import UsageTracking

__all__ = [
    # Ledger
    "Establishment",
    "Receipt",
    "EntryType",
    "PointsBalance",
    "PointsHistoryEntry",
    # Entitlements
    "Plan",
    "SubscriptionStatus",
    "PaymentMethod",
    "Subscription",
    "UsageTracking",
]
