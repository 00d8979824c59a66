"""
Pointman Gates - Validation rules checked before any state mutation.

G1: PositiveAmount - Points/amounts are positive integers
G2: PageBounds - Listings ask for a real page of a bounded size
G3: PlanTransition - Upgrades go to a paid plan, never down, for 1-12 months
G4: SubscriptionConsistency - Pre-persist check of a subscription row
G5: KnownEntryType - History filters use a real entry type
"""

from dataclasses import dataclass

from pointman.conf import pointman_settings
from pointman.exceptions import ValidationError


class GateError(ValidationError):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None, code: str | None = None):
        self.gate_name = gate_name
        self.details = details or {}
        super().__init__(code, f"[{gate_name}] {message}", gate=gate_name, **self.details)


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Pointman validation gates."""

    # =========================================================================
    # G1: Positive Amount
    # =========================================================================

    @classmethod
    def positive_amount(cls, amount, field: str = "amount") -> GateResult:
        """
        G1: Amount must be an integer greater than zero.

        Booleans are rejected even though they are ints in Python.

        Raises:
            GateError: If amount is not a positive integer
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise GateError(
                "G1_PositiveAmount",
                f"{field} must be a positive integer.",
                {"field": field, "value": repr(amount)},
                code="INVALID_AMOUNT",
            )
        return GateResult(True, "G1_PositiveAmount")

    @classmethod
    def check_positive_amount(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.positive_amount(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # G2: Page Bounds
    # =========================================================================

    @classmethod
    def page_bounds(cls, page: int, limit: int) -> GateResult:
        """
        G2: page >= 1 and 1 <= limit <= MAX_PAGE_SIZE.

        Raises:
            GateError: If page or limit is out of range
        """
        max_size = pointman_settings.MAX_PAGE_SIZE
        valid = (
            isinstance(page, int)
            and isinstance(limit, int)
            and page >= 1
            and 1 <= limit <= max_size
        )
        if not valid:
            raise GateError(
                "G2_PageBounds",
                f"page must be >= 1 and limit between 1 and {max_size}.",
                {"page": page, "limit": limit},
                code="INVALID_PAGE",
            )
        return GateResult(True, "G2_PageBounds")

    # =========================================================================
    # G3: Plan Transition
    # =========================================================================

    MIN_DURATION_MONTHS = 1
    MAX_DURATION_MONTHS = 12

    @classmethod
    def plan_transition(cls, current_plan: str, new_plan: str, months: int = 1) -> GateResult:
        """
        G3: Upgrade target is a paid plan ranked at or above the current one.

        Args:
            current_plan: Paid plan currently held (free when none or lapsed)
            new_plan: Requested plan
            months: Requested duration

        Raises:
            GateError: If the plan is unknown/free, a downgrade, or the duration is out of range
        """
        from pointman.entitlements import PLAN_CATALOG, plan_rank
        from pointman.models import Plan

        if new_plan not in PLAN_CATALOG or new_plan == Plan.FREE:
            raise GateError(
                "G3_PlanTransition",
                f"Invalid plan selection: {new_plan}",
                {"allowed": [p for p in PLAN_CATALOG if p != Plan.FREE]},
                code="INVALID_PLAN",
            )

        if isinstance(months, bool) or not isinstance(months, int) or not (
            cls.MIN_DURATION_MONTHS <= months <= cls.MAX_DURATION_MONTHS
        ):
            raise GateError(
                "G3_PlanTransition",
                f"Duration must be between {cls.MIN_DURATION_MONTHS} and "
                f"{cls.MAX_DURATION_MONTHS} months.",
                {"months": months},
            )

        if plan_rank(new_plan) < plan_rank(current_plan):
            raise GateError(
                "G3_PlanTransition",
                "Cannot downgrade plan. Please contact support for assistance.",
                {"current_plan": str(current_plan), "new_plan": str(new_plan)},
                code="PLAN_DOWNGRADE_DENIED",
            )

        return GateResult(True, "G3_PlanTransition")

    @classmethod
    def check_plan_transition(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.plan_transition(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # G4: Subscription Consistency
    # =========================================================================

    @classmethod
    def subscription_consistency(cls, subscription) -> GateResult:
        """
        G4: Pre-persist validation of a subscription.

        - free plan has no end date
        - a used trial is not active
        - an active trial has an end date after its start
        - a paid end date is after the start date

        Raises:
            GateError: Listing every violated rule
        """
        from pointman.models import Plan

        problems = []
        if subscription.plan == Plan.FREE and subscription.end_date is not None:
            problems.append("free plan cannot have an end date")
        if subscription.trial_used and subscription.trial_active:
            problems.append("used trial cannot be active")
        if subscription.trial_active:
            if subscription.trial_end is None:
                problems.append("active trial needs an end date")
            elif subscription.trial_start and subscription.trial_end <= subscription.trial_start:
                problems.append("trial must end after it starts")
        if (
            subscription.plan != Plan.FREE
            and subscription.end_date is not None
            and subscription.end_date <= subscription.start_date
        ):
            problems.append("end date must be after start date")

        if problems:
            raise GateError(
                "G4_SubscriptionConsistency",
                "; ".join(problems),
                {"problems": problems},
            )
        return GateResult(True, "G4_SubscriptionConsistency")

    @classmethod
    def check_subscription_consistency(cls, subscription) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.subscription_consistency(subscription)
            return True
        except GateError:
            return False

    # =========================================================================
    # G5: Known Entry Type
    # =========================================================================

    @classmethod
    def known_entry_type(cls, entry_type: str) -> GateResult:
        """
        G5: History filter must be earned or deducted.

        Raises:
            GateError: If entry type is unknown
        """
        from pointman.models import EntryType

        if entry_type not in EntryType.values:
            raise GateError(
                "G5_KnownEntryType",
                f"Unknown entry type: {entry_type}",
                {"allowed": list(EntryType.values)},
                code="INVALID_ENTRY_TYPE",
            )
        return GateResult(True, "G5_KnownEntryType")
