"""Establishment model - the issuer of receipts and owner of point balances."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Establishment(models.Model):
    """
    Business that issues receipts and deducts points.

    Authentication (API tokens, dashboard logins) lives outside Pointman;
    callers hand in an already-authenticated establishment id.
    """

    code = models.CharField(
        _("code"),
        max_length=50,
        unique=True,
        help_text=_("Unique establishment code (e.g. EST-001)"),
    )
    name = models.CharField(_("commercial name"), max_length=200)
    is_active = models.BooleanField(_("active"), default=True, db_index=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        db_table = "pointman_establishment"
        verbose_name = _("establishment")
        verbose_name_plural = _("establishments")
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"
