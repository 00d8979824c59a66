"""Ledger service - per-establishment point balances and their history.

Balance mutations run inside transaction.atomic() with the balance row
locked (select_for_update) and the arithmetic done by the database
(F() expressions), so concurrent credits and debits on the same
(user, establishment) pair cannot lose an update. Every mutation
appends exactly one history entry in the same transaction.
"""

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.db.models import F, Q, Sum

from pointman.exceptions import InsufficientPoints, StorageConflict
from pointman.gates import Gates
from pointman.models import EntryType, PointsBalance, PointsHistoryEntry, Receipt
from pointman.services.actors import get_establishment, get_user
from pointman.signals import points_credited, points_debited
from pointman.utils import Page, paginate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeductionResult:
    """Outcome of an establishment deducting points."""

    points_deducted: int
    remaining_points: int
    entry: PointsHistoryEntry

    def as_dict(self) -> dict:
        return {"pointsDeducted": self.points_deducted, "remainingPoints": self.remaining_points}


@dataclass(frozen=True)
class Reconciliation:
    """Stored balance compared with the fold of its history."""

    balance: int
    history_total: int

    @property
    def consistent(self) -> bool:
        return self.balance == self.history_total


class LedgerService:
    """
    Service for points ledger operations.

    Uses @classmethod for extensibility (consistent with the other services).
    All point mutations use transaction.atomic().
    """

    @classmethod
    def credit(
        cls,
        user_id,
        establishment_id,
        amount: int,
        receipt: Receipt | None = None,
        description: str = "",
    ) -> PointsBalance:
        """
        Add points to the (user, establishment) balance.

        Creates the balance on first earn. Joins the caller's transaction
        when there is one (ReceiptService.claim), so the claim and the
        credit commit or roll back together.

        Args:
            user_id: User receiving points
            establishment_id: Establishment the points belong to
            amount: Points to add (positive)
            receipt: Claimed receipt, recorded on the history entry
            description: History text (defaults from the receipt)

        Returns:
            Updated PointsBalance

        Raises:
            ValidationError: If amount is not positive
            NotFound: If user or establishment is unknown
            StorageConflict: If the balance row was created concurrently
        """
        Gates.positive_amount(amount)
        user = get_user(user_id)
        establishment = get_establishment(establishment_id)
        if not description:
            description = (
                f"Points earned from receipt #{receipt.identifier}" if receipt else "Points earned"
            )

        with transaction.atomic():
            balance = cls._get_balance_for_update(user, establishment, create=True)
            PointsBalance.objects.filter(pk=balance.pk).update(amount=F("amount") + amount)
            balance.refresh_from_db(fields=["amount", "updated_at"])

            entry = PointsHistoryEntry.objects.create(
                user=user,
                establishment=establishment,
                entry_type=EntryType.EARNED,
                amount=amount,
                receipt=receipt,
                description=description,
                balance_after=balance.amount,
            )
            transaction.on_commit(
                lambda: points_credited.send(sender=PointsBalance, balance=balance, entry=entry)
            )

        logger.info(
            "Credited %d pts to user=%s at establishment=%s (balance=%d)",
            amount, user.pk, establishment.pk, balance.amount,
        )
        return balance

    @classmethod
    def debit(
        cls,
        user_id,
        establishment_id,
        amount: int,
        description: str = "",
    ) -> tuple[PointsBalance, PointsHistoryEntry]:
        """
        Remove points from the (user, establishment) balance.

        Returns:
            (updated PointsBalance, created history entry)

        Raises:
            ValidationError: If amount is not positive
            NotFound: If user or establishment is unknown
            InsufficientPoints: If the balance is lower than amount (nothing changes)
        """
        Gates.positive_amount(amount)
        user = get_user(user_id)
        establishment = get_establishment(establishment_id)
        if not description:
            description = f"Points deducted by {establishment.name}"

        with transaction.atomic():
            balance = cls._get_balance_for_update(user, establishment, create=False)
            available = balance.amount if balance else 0
            if balance is None or available < amount:
                raise InsufficientPoints(available=available, requested=amount)

            # Conditional write: never below zero even if the lock is a no-op
            updated = PointsBalance.objects.filter(
                pk=balance.pk, amount__gte=amount,
            ).update(amount=F("amount") - amount)
            if not updated:
                raise InsufficientPoints(available=available, requested=amount)
            balance.refresh_from_db(fields=["amount", "updated_at"])

            entry = PointsHistoryEntry.objects.create(
                user=user,
                establishment=establishment,
                entry_type=EntryType.DEDUCTED,
                amount=amount,
                description=description,
                balance_after=balance.amount,
            )
            transaction.on_commit(
                lambda: points_debited.send(sender=PointsBalance, balance=balance, entry=entry)
            )

        logger.info(
            "Debited %d pts from user=%s at establishment=%s (balance=%d)",
            amount, user.pk, establishment.pk, balance.amount,
        )
        return balance, entry

    @classmethod
    def deduct(cls, establishment_id, user_id, points: int) -> DeductionResult:
        """
        Establishment-facing deduction.

        Returns:
            DeductionResult (pointsDeducted, remainingPoints)

        Raises:
            ValidationError, NotFound, InsufficientPoints
        """
        balance, entry = cls.debit(user_id, establishment_id, points)
        return DeductionResult(
            points_deducted=points,
            remaining_points=balance.amount,
            entry=entry,
        )

    @classmethod
    def get_balance(cls, user_id, establishment_id) -> int:
        """Current points at one establishment. Returns 0 if never credited."""
        balance = PointsBalance.objects.filter(
            user_id=user_id,
            establishment_id=establishment_id,
        ).first()
        return balance.amount if balance else 0

    @classmethod
    def balances(cls, user_id) -> list[PointsBalance]:
        """All balances of a user, one per establishment."""
        return list(
            PointsBalance.objects.filter(user_id=user_id)
            .select_related("establishment")
            .order_by("establishment__name")
        )

    @classmethod
    def history_for(
        cls,
        establishment_id,
        user_id=None,
        entry_type: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        """
        History of one establishment across users, newest first.

        Args:
            establishment_id: Establishment scope
            user_id: Only this user's entries (optional)
            entry_type: "earned" or "deducted" (optional)
            page: 1-based page number
            limit: Page size (default DEFAULT_PAGE_SIZE)
        """
        qs = PointsHistoryEntry.objects.filter(establishment_id=establishment_id)
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if entry_type is not None:
            Gates.known_entry_type(entry_type)
            qs = qs.filter(entry_type=entry_type)
        return paginate(qs.select_related("receipt"), page, limit)

    @classmethod
    def reconcile(cls, user_id, establishment_id) -> Reconciliation:
        """Fold the history of a (user, establishment) pair and compare with its balance."""
        totals = PointsHistoryEntry.objects.filter(
            user_id=user_id,
            establishment_id=establishment_id,
        ).aggregate(
            earned=Sum("amount", filter=Q(entry_type=EntryType.EARNED)),
            deducted=Sum("amount", filter=Q(entry_type=EntryType.DEDUCTED)),
        )
        history_total = (totals["earned"] or 0) - (totals["deducted"] or 0)
        return Reconciliation(
            balance=cls.get_balance(user_id, establishment_id),
            history_total=history_total,
        )

    @classmethod
    def _get_balance_for_update(cls, user, establishment, create: bool) -> PointsBalance | None:
        """
        Get the balance row with a row-level lock.

        MUST be called inside transaction.atomic(). When ``create`` is set
        and the row does not exist yet, it is inserted under a savepoint;
        losing that insert race to a concurrent transaction raises
        StorageConflict so the whole unit of work can be retried.
        """
        try:
            return PointsBalance.objects.select_for_update().get(
                user=user,
                establishment=establishment,
            )
        except PointsBalance.DoesNotExist:
            if not create:
                return None

        try:
            with transaction.atomic():
                return PointsBalance.objects.create(user=user, establishment=establishment, amount=0)
        except IntegrityError:
            raise StorageConflict(
                "STORAGE_CONFLICT",
                user_id=user.pk,
                establishment_id=establishment.pk,
            )

