"""UsageTracking model - per-user quota counters."""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class UsageTracking(models.Model):
    """
    Quota counters of one user.

    Daily and monthly counters are paired with the instant they were
    last reset; a counter older than its bucket reads as zero (see
    pointman.quotas.effective_count) until the scheduler rewrites it.
    Total counters never reset on their own: they follow the resources
    they count (supervisors, projects, partners).
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="usage",
        verbose_name=_("user"),
    )

    # Daily
    voice_inputs = models.PositiveIntegerField(_("voice inputs today"), default=0)
    voice_inputs_reset_at = models.DateTimeField(_("voice inputs reset at"), default=timezone.now)
    expenses = models.PositiveIntegerField(_("expenses today"), default=0)
    expenses_reset_at = models.DateTimeField(_("expenses reset at"), default=timezone.now)

    # Monthly
    revenues = models.PositiveIntegerField(_("revenues this month"), default=0)
    revenues_reset_at = models.DateTimeField(_("revenues reset at"), default=timezone.now)

    # Totals
    supervisors = models.PositiveIntegerField(_("supervisors"), default=0)
    projects = models.PositiveIntegerField(_("projects"), default=0)
    partners = models.PositiveIntegerField(_("partners"), default=0)

    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "pointman_usage_tracking"
        verbose_name = _("usage tracking")
        verbose_name_plural = _("usage tracking")
        indexes = [
            models.Index(fields=["voice_inputs_reset_at"], name="pointman_usage_voice_rst_idx"),
            models.Index(fields=["expenses_reset_at"], name="pointman_usage_exp_rst_idx"),
            models.Index(fields=["revenues_reset_at"], name="pointman_usage_rev_rst_idx"),
        ]

    def __str__(self):
        return (
            f"{self.user_id}: voice={self.voice_inputs} expenses={self.expenses} "
            f"revenues={self.revenues}"
        )
