"""Points ledger models - per-establishment balances and their audit history."""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from pointman.exceptions import ValidationError


class EntryType(models.TextChoices):
    """Points history entry types."""

    EARNED = "earned", _("Earned")
    DEDUCTED = "deducted", _("Deducted")


class PointsBalance(models.Model):
    """
    A user's point total at one establishment.

    Created lazily on the first credit, never deleted. Mutated only
    through LedgerService (row lock + F() expressions), never by
    read-modify-save from Python.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="point_balances",
        verbose_name=_("user"),
    )
    establishment = models.ForeignKey(
        "pointman.Establishment",
        on_delete=models.PROTECT,
        related_name="point_balances",
        verbose_name=_("establishment"),
    )
    amount = models.IntegerField(_("points"), default=0)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "pointman_points_balance"
        verbose_name = _("points balance")
        verbose_name_plural = _("points balances")
        constraints = [
            models.UniqueConstraint(
                fields=["user", "establishment"],
                name="pointman_unique_balance_per_establishment",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="pointman_balance_not_negative",
            ),
        ]

    def __str__(self):
        return f"{self.user_id}@{self.establishment_id}: {self.amount}pts"


class PointsHistoryEntry(models.Model):
    """
    Immutable record of one earn or deduct event.

    Append-only: the signed amounts of all entries for a
    (user, establishment) pair always add up to PointsBalance.amount.
    An earned entry created by a claim points at its receipt; the
    one-to-one link makes a second credit for the same receipt impossible.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="points_history",
        verbose_name=_("user"),
    )
    establishment = models.ForeignKey(
        "pointman.Establishment",
        on_delete=models.PROTECT,
        related_name="points_history",
        verbose_name=_("establishment"),
    )
    entry_type = models.CharField(
        _("type"),
        max_length=10,
        choices=EntryType.choices,
    )
    amount = models.PositiveIntegerField(_("points"))
    receipt = models.OneToOneField(
        "pointman.Receipt",
        on_delete=models.PROTECT,
        related_name="history_entry",
        null=True,
        blank=True,
        verbose_name=_("receipt"),
    )
    description = models.CharField(_("description"), max_length=200)
    balance_after = models.IntegerField(
        _("balance after"),
        help_text=_("Balance right after this entry was applied"),
    )
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "pointman_points_history"
        verbose_name = _("points history entry")
        verbose_name_plural = _("points history")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="pointman_history_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(receipt__isnull=True) | models.Q(entry_type="earned"),
                name="pointman_history_receipt_only_when_earned",
            ),
        ]
        indexes = [
            models.Index(fields=["establishment", "-created_at"], name="pointman_hist_est_created_idx"),
            models.Index(fields=["user", "establishment"], name="pointman_hist_user_est_idx"),
        ]

    def __str__(self):
        return f"{self.signed_amount:+d}pts - {self.description}"

    @property
    def signed_amount(self) -> int:
        """Positive for earned, negative for deducted."""
        return self.amount if self.entry_type == EntryType.EARNED else -self.amount

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("HISTORY_IMMUTABLE", entry_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("HISTORY_IMMUTABLE", entry_id=self.pk)
