"""Receipt model - a one-time claimable point award."""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Receipt(models.Model):
    """
    Receipt issued by an establishment, worth ``amount`` points.

    Lifecycle: unclaimed -> claimed, exactly once. The transition is
    owned by ReceiptService.claim(), which flips ``claimed`` with a
    conditional UPDATE so two concurrent claims cannot both win.
    Receipts are never deleted (audit trail).
    """

    identifier = models.CharField(
        _("receipt id"),
        max_length=16,
        unique=True,
        help_text=_("Short code typed by the customer"),
    )
    establishment = models.ForeignKey(
        "pointman.Establishment",
        on_delete=models.PROTECT,
        related_name="receipts",
        verbose_name=_("establishment"),
    )
    amount = models.PositiveIntegerField(_("points"))

    # Claim state
    claimed = models.BooleanField(_("claimed"), default=False, db_index=True)
    claimed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="claimed_receipts",
        null=True,
        blank=True,
        verbose_name=_("claimed by"),
    )
    claimed_at = models.DateTimeField(_("claimed at"), null=True, blank=True)

    customer_phone = models.CharField(_("customer phone"), max_length=20, blank=True)
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "pointman_receipt"
        verbose_name = _("receipt")
        verbose_name_plural = _("receipts")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="pointman_receipt_amount_positive",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(claimed=False)
                    | models.Q(claimed_by__isnull=False, claimed_at__isnull=False)
                ),
                name="pointman_receipt_claim_complete",
            ),
        ]
        indexes = [
            models.Index(
                fields=["establishment", "claimed", "-created_at"],
                name="pointman_rcpt_est_claim_idx",
            ),
        ]

    def __str__(self):
        state = "claimed" if self.claimed else "open"
        return f"{self.identifier}: {self.amount}pts ({state})"
