"""
Pointman signals - public event API.

Ledger signals are sent on transaction commit, so receivers never see a
claim or deduction that was rolled back.

Emitted signals:
- receipt_issued: ReceiptService.issue()
- receipt_claimed: ReceiptService.claim()
- points_credited / points_debited: LedgerService.credit() / debit()
- subscription_changed: SubscriptionService.upgrade() / cancel()
- subscription_expired / free_trial_expired: scheduler jobs (bulk, with count)
"""

from django.dispatch import Signal

# Ledger signals
receipt_issued = Signal()  # sender=Receipt, receipt=Receipt
receipt_claimed = Signal()  # sender=Receipt, receipt=Receipt, balance=PointsBalance
points_credited = Signal()  # sender=PointsBalance, balance=..., entry=PointsHistoryEntry
points_debited = Signal()  # sender=PointsBalance, balance=..., entry=PointsHistoryEntry

# Subscription signals
subscription_changed = Signal()  # sender=Subscription, subscription=..., changes=dict
subscription_expired = Signal()  # sender=Subscription, count=int, now=datetime
free_trial_expired = Signal()  # sender=Subscription, count=int, now=datetime
