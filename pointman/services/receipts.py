"""Receipt service - issuance and at-most-once claims.

A claim is one unit of work: the conditional UPDATE that flips
``claimed`` and the ledger credit share a transaction, so a receipt is
never claimed without its earned history entry (or the reverse).
"""

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.utils import timezone

from pointman.exceptions import AlreadyClaimed, NotFound, StorageConflict
from pointman.gates import Gates
from pointman.identifiers import generate_unique
from pointman.models import PointsBalance, Receipt
from pointman.services.actors import get_establishment, get_user
from pointman.services.ledger import LedgerService
from pointman.signals import receipt_claimed, receipt_issued
from pointman.utils import Page, paginate, retry_on_conflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a successful claim."""

    receipt: Receipt
    balance: PointsBalance

    @property
    def points_added(self) -> int:
        return self.receipt.amount

    @property
    def total_points(self) -> int:
        return self.balance.amount

    def as_dict(self) -> dict:
        return {"pointsAdded": self.points_added, "totalPoints": self.total_points}


class ReceiptService:
    """
    Service for receipt operations.

    Uses @classmethod for extensibility (consistent with the other services).
    """

    @classmethod
    def issue(
        cls,
        establishment_id,
        amount: int,
        metadata: dict | None = None,
        customer_phone: str = "",
    ) -> Receipt:
        """
        Create an unclaimed receipt with a fresh identifier.

        Args:
            establishment_id: Issuing establishment
            amount: Point value (positive integer)
            metadata: Opaque key/value data kept with the receipt
            customer_phone: Optional customer phone (trimmed)

        Returns:
            Created Receipt

        Raises:
            ValidationError: If amount is not positive
            NotFound: If establishment is unknown
            IdentifierExhausted: If no unused identifier was found
        """
        Gates.positive_amount(amount)
        establishment = get_establishment(establishment_id)

        receipt = retry_on_conflict(
            lambda: cls._create(establishment, amount, metadata or {}, (customer_phone or "").strip())
        )

        transaction.on_commit(lambda: receipt_issued.send(sender=Receipt, receipt=receipt))
        logger.info(
            "Issued receipt %s (%d pts) for establishment=%s",
            receipt.identifier, amount, establishment.pk,
        )
        return receipt

    @classmethod
    def claim(cls, identifier: str, establishment_id, user_id) -> ClaimResult:
        """
        Redeem a receipt for points, exactly once.

        The receipt is looked up by (identifier, establishment), so an
        identifier typed at the wrong establishment is simply not found.

        Returns:
            ClaimResult (pointsAdded, totalPoints)

        Raises:
            NotFound: If no such receipt at this establishment, or unknown user
            AlreadyClaimed: If the receipt was claimed before (or concurrently)
        """
        result = retry_on_conflict(lambda: cls._claim_once(identifier, establishment_id, user_id))

        logger.info(
            "Receipt %s claimed by user=%s (+%d pts, total=%d)",
            identifier, user_id, result.points_added, result.total_points,
        )
        return result

    @classmethod
    def list(
        cls,
        establishment_id,
        claimed: bool | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        """Receipts of an establishment, newest first, optionally by claim state."""
        qs = Receipt.objects.filter(establishment_id=establishment_id)
        if claimed is not None:
            qs = qs.filter(claimed=claimed)
        return paginate(qs.select_related("claimed_by"), page, limit)

    @classmethod
    def get(cls, identifier: str, establishment_id) -> Receipt:
        """Receipt by (identifier, establishment)."""
        try:
            return Receipt.objects.get(identifier=identifier, establishment_id=establishment_id)
        except (Receipt.DoesNotExist, ValueError, TypeError):
            raise NotFound(
                "RECEIPT_NOT_FOUND",
                identifier=identifier,
                establishment_id=establishment_id,
            )

    @classmethod
    def _identifier_exists(cls, identifier: str) -> bool:
        return Receipt.objects.filter(identifier=identifier).exists()

    @classmethod
    def _create(cls, establishment, amount: int, metadata: dict, customer_phone: str) -> Receipt:
        """
        Insert one receipt under a freshly generated identifier.

        The existence check is a lock-free read; an identifier taken
        between that read and the insert surfaces as StorageConflict.
        """
        identifier = generate_unique(cls._identifier_exists)
        try:
            with transaction.atomic():
                return Receipt.objects.create(
                    identifier=identifier,
                    establishment=establishment,
                    amount=amount,
                    metadata=metadata,
                    customer_phone=customer_phone,
                )
        except IntegrityError:
            raise StorageConflict("STORAGE_CONFLICT", identifier=identifier)

    @classmethod
    def _claim_once(cls, identifier: str, establishment_id, user_id) -> ClaimResult:
        get_user(user_id)
        with transaction.atomic():
            receipt = cls.get(identifier, establishment_id)
            if receipt.claimed:
                raise AlreadyClaimed(
                    identifier=identifier,
                    claimed_at=receipt.claimed_at.isoformat() if receipt.claimed_at else None,
                )

            now = timezone.now()
            # Compare-and-set: only one concurrent claim can match claimed=False
            updated = Receipt.objects.filter(pk=receipt.pk, claimed=False).update(
                claimed=True,
                claimed_by_id=user_id,
                claimed_at=now,
            )
            if not updated:
                raise AlreadyClaimed(identifier=identifier)

            receipt.claimed = True
            receipt.claimed_by_id = user_id
            receipt.claimed_at = now

            balance = LedgerService.credit(
                user_id,
                receipt.establishment_id,
                receipt.amount,
                receipt=receipt,
            )
            transaction.on_commit(
                lambda: receipt_claimed.send(sender=Receipt, receipt=receipt, balance=balance)
            )

        return ClaimResult(receipt=receipt, balance=balance)
