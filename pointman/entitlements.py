"""
Entitlement resolution - pure functions over a subscription snapshot.

Nothing here reads the clock or the database: callers pass ``now``
explicitly, so results are reproducible. Resolution runs ahead of the
scheduler: an expired paid plan or a lapsed trial resolves correctly
even while the stored row still says otherwise.

Usage:
    from pointman.entitlements import resolve

    entitlement = resolve(subscription, timezone.now())
    entitlement.effective_plan   # "trial", "free", "tier1", ...
    entitlement.limits.expenses  # 5, or UNLIMITED
"""

from dataclasses import dataclass
from datetime import datetime

from pointman.models.subscription import Plan, SubscriptionStatus


class _Unlimited:
    """Sentinel for a limit without a ceiling. Compare with ``is``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNLIMITED"

    def __reduce__(self):
        return (_Unlimited, ())


UNLIMITED = _Unlimited()

Limit = int | _Unlimited

TRIAL = "trial"


@dataclass(frozen=True)
class Limits:
    """Numeric ceilings per dimension (daily, monthly, then totals)."""

    voice_inputs: Limit
    expenses: Limit
    revenues: Limit
    supervisors: Limit
    projects: Limit
    partners: Limit

    def get(self, dimension: str) -> Limit:
        return getattr(self, dimension)

    def as_dict(self) -> dict:
        return {
            name: (None if value is UNLIMITED else value)
            for name, value in self.__dict__.items()
        }


UNLIMITED_LIMITS = Limits(
    voice_inputs=UNLIMITED,
    expenses=UNLIMITED,
    revenues=UNLIMITED,
    supervisors=UNLIMITED,
    projects=UNLIMITED,
    partners=UNLIMITED,
)


@dataclass(frozen=True)
class PlanDefinition:
    code: str
    name: str
    price: int | None  # EGP per period, None = negotiated
    period: str
    rank: int
    limits: Limits


PLAN_CATALOG: dict[str, PlanDefinition] = {
    Plan.FREE: PlanDefinition(
        code=Plan.FREE,
        name="Free",
        price=0,
        period="forever",
        rank=0,
        limits=Limits(
            voice_inputs=3,
            expenses=5,
            revenues=3,
            supervisors=0,
            projects=0,
            partners=0,
        ),
    ),
    Plan.TIER1: PlanDefinition(
        code=Plan.TIER1,
        name="Personal Plus",
        price=49,
        period="month",
        rank=1,
        limits=Limits(
            voice_inputs=20,
            expenses=50,
            revenues=20,
            supervisors=1,
            projects=0,
            partners=0,
        ),
    ),
    Plan.TIER2: PlanDefinition(
        code=Plan.TIER2,
        name="Pro",
        price=99,
        period="month",
        rank=2,
        limits=Limits(
            voice_inputs=UNLIMITED,
            expenses=UNLIMITED,
            revenues=UNLIMITED,
            supervisors=3,
            projects=UNLIMITED,
            partners=UNLIMITED,
        ),
    ),
    Plan.TIER3: PlanDefinition(
        code=Plan.TIER3,
        name="Company",
        price=None,
        period="custom",
        rank=3,
        limits=UNLIMITED_LIMITS,
    ),
}


@dataclass(frozen=True)
class Entitlement:
    """Resolved plan and limits at one instant."""

    effective_plan: str
    limits: Limits
    on_trial: bool = False
    expired: bool = False


# =============================================================================
# Derived facts
# =============================================================================


def trial_running(subscription, now: datetime) -> bool:
    """Trial flagged active and not past its end (end instant inclusive)."""
    return bool(
        subscription.trial_active
        and subscription.trial_end is not None
        and now <= subscription.trial_end
    )


def is_expired(subscription, now: datetime) -> bool:
    """Paid plan whose end date has passed. Free never expires."""
    if subscription.plan == Plan.FREE:
        return False
    return subscription.end_date is not None and now > subscription.end_date


def days_until_expiry(subscription, now: datetime) -> int | None:
    """Whole days left on a paid plan; None for free or unbounded plans."""
    if subscription.plan == Plan.FREE or subscription.end_date is None:
        return None
    return max(0, (subscription.end_date - now).days)


def trial_days_remaining(subscription, now: datetime) -> int:
    if not trial_running(subscription, now):
        return 0
    return max(0, (subscription.trial_end - now).days)


def held_plan(subscription, now: datetime) -> str:
    """
    Plan the user has paid for and still holds, trial ignored.

    Free when the stored plan is free, lapsed or not active.
    """
    if (
        subscription.plan == Plan.FREE
        or subscription.status != SubscriptionStatus.ACTIVE
        or is_expired(subscription, now)
    ):
        return Plan.FREE
    return subscription.plan


def plan_rank(plan: str) -> int:
    """Ordering of plans (free=0). The trial ranks as free."""
    definition = PLAN_CATALOG.get(plan)
    return definition.rank if definition else 0


# =============================================================================
# Resolution
# =============================================================================


def resolve(subscription, now: datetime) -> Entitlement:
    """
    Map a subscription snapshot to its effective plan and limits.

    Order of precedence:
        1. running trial     -> unlimited, reported as "trial"
        2. free plan         -> free limits
        3. paid, past end    -> free limits (before the scheduler rewrites the row)
        4. paid, not active  -> free limits
        5. paid              -> the plan's limits (no end date = non-expiring)
    """
    if trial_running(subscription, now):
        return Entitlement(effective_plan=TRIAL, limits=UNLIMITED_LIMITS, on_trial=True)

    free = PLAN_CATALOG[Plan.FREE]

    if subscription.plan == Plan.FREE:
        return Entitlement(effective_plan=Plan.FREE, limits=free.limits)

    if is_expired(subscription, now):
        return Entitlement(effective_plan=Plan.FREE, limits=free.limits, expired=True)

    if subscription.status != SubscriptionStatus.ACTIVE:
        return Entitlement(
            effective_plan=Plan.FREE,
            limits=free.limits,
            expired=subscription.status == SubscriptionStatus.EXPIRED,
        )

    definition = PLAN_CATALOG.get(subscription.plan, free)
    return Entitlement(effective_plan=definition.code, limits=definition.limits)


def suggest_upgrade(effective_plan: str, dimension: str) -> PlanDefinition | None:
    """Cheapest plan above ``effective_plan`` that raises the ``dimension`` ceiling."""
    current = PLAN_CATALOG.get(effective_plan, PLAN_CATALOG[Plan.FREE])
    current_limit = current.limits.get(dimension)
    if current_limit is UNLIMITED:
        return None

    for definition in sorted(PLAN_CATALOG.values(), key=lambda d: d.rank):
        if definition.rank <= current.rank:
            continue
        limit = definition.limits.get(dimension)
        if limit is UNLIMITED or limit > current_limit:
            return definition
    return None
