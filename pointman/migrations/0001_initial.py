# Generated migration for the ledger and entitlement models

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Establishment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "code",
                    models.CharField(
                        help_text="Unique establishment code (e.g. EST-001)",
                        max_length=50,
                        unique=True,
                        verbose_name="code",
                    ),
                ),
                ("name", models.CharField(max_length=200, verbose_name="commercial name")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "establishment",
                "verbose_name_plural": "establishments",
                "db_table": "pointman_establishment",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Receipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "identifier",
                    models.CharField(
                        help_text="Short code typed by the customer",
                        max_length=16,
                        unique=True,
                        verbose_name="receipt id",
                    ),
                ),
                ("amount", models.PositiveIntegerField(verbose_name="points")),
                ("claimed", models.BooleanField(db_index=True, default=False, verbose_name="claimed")),
                ("claimed_at", models.DateTimeField(blank=True, null=True, verbose_name="claimed at")),
                ("customer_phone", models.CharField(blank=True, max_length=20, verbose_name="customer phone")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "claimed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="claimed_receipts",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="claimed by",
                    ),
                ),
                (
                    "establishment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="receipts",
                        to="pointman.establishment",
                        verbose_name="establishment",
                    ),
                ),
            ],
            options={
                "verbose_name": "receipt",
                "verbose_name_plural": "receipts",
                "db_table": "pointman_receipt",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["establishment", "claimed", "-created_at"],
                        name="pointman_rcpt_est_claim_idx",
                    ),
                ],
                "constraints": [
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
                ],
            },
        ),
        migrations.CreateModel(
            name="PointsBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.IntegerField(default=0, verbose_name="points")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "establishment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="point_balances",
                        to="pointman.establishment",
                        verbose_name="establishment",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="point_balances",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="user",
                    ),
                ),
            ],
            options={
                "verbose_name": "points balance",
                "verbose_name_plural": "points balances",
                "db_table": "pointman_points_balance",
                "constraints": [
                    models.UniqueConstraint(
                        fields=["user", "establishment"],
                        name="pointman_unique_balance_per_establishment",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount__gte=0),
                        name="pointman_balance_not_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointsHistoryEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[("earned", "Earned"), ("deducted", "Deducted")],
                        max_length=10,
                        verbose_name="type",
                    ),
                ),
                ("amount", models.PositiveIntegerField(verbose_name="points")),
                ("description", models.CharField(max_length=200, verbose_name="description")),
                (
                    "balance_after",
                    models.IntegerField(
                        help_text="Balance right after this entry was applied",
                        verbose_name="balance after",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "establishment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="points_history",
                        to="pointman.establishment",
                        verbose_name="establishment",
                    ),
                ),
                (
                    "receipt",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="history_entry",
                        to="pointman.receipt",
                        verbose_name="receipt",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="points_history",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="user",
                    ),
                ),
            ],
            options={
                "verbose_name": "points history entry",
                "verbose_name_plural": "points history",
                "db_table": "pointman_points_history",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["establishment", "-created_at"], name="pointman_hist_est_created_idx"),
                    models.Index(fields=["user", "establishment"], name="pointman_hist_user_est_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=0),
                        name="pointman_history_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(receipt__isnull=True) | models.Q(entry_type="earned"),
                        name="pointman_history_receipt_only_when_earned",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "plan",
                    models.CharField(
                        choices=[
                            ("free", "Free"),
                            ("tier1", "Personal Plus"),
                            ("tier2", "Pro"),
                            ("tier3", "Company"),
                        ],
                        db_index=True,
                        default="free",
                        max_length=10,
                        verbose_name="plan",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("inactive", "Inactive"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        default="active",
                        max_length=10,
                        verbose_name="status",
                    ),
                ),
                ("start_date", models.DateTimeField(verbose_name="start date")),
                ("end_date", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="end date")),
                ("auto_renew", models.BooleanField(default=False, verbose_name="auto renew")),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("vodafone_cash", "Vodafone Cash"),
                            ("instapay", "InstaPay"),
                            ("bank_transfer", "Bank transfer"),
                        ],
                        max_length=20,
                        verbose_name="payment method",
                    ),
                ),
                ("trial_active", models.BooleanField(db_index=True, default=False, verbose_name="trial active")),
                ("trial_start", models.DateTimeField(blank=True, null=True, verbose_name="trial start")),
                ("trial_end", models.DateTimeField(blank=True, null=True, verbose_name="trial end")),
                ("trial_used", models.BooleanField(default=False, verbose_name="trial used")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscription",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="user",
                    ),
                ),
            ],
            options={
                "verbose_name": "subscription",
                "verbose_name_plural": "subscriptions",
                "db_table": "pointman_subscription",
                "constraints": [
                    models.CheckConstraint(
                        condition=~models.Q(plan="free") | models.Q(end_date__isnull=True),
                        name="pointman_free_plan_has_no_end_date",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(trial_used=False) | models.Q(trial_active=False),
                        name="pointman_used_trial_never_active",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(trial_active=False) | models.Q(trial_end__isnull=False),
                        name="pointman_active_trial_has_end",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UsageTracking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voice_inputs", models.PositiveIntegerField(default=0, verbose_name="voice inputs today")),
                (
                    "voice_inputs_reset_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="voice inputs reset at"),
                ),
                ("expenses", models.PositiveIntegerField(default=0, verbose_name="expenses today")),
                (
                    "expenses_reset_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="expenses reset at"),
                ),
                ("revenues", models.PositiveIntegerField(default=0, verbose_name="revenues this month")),
                (
                    "revenues_reset_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="revenues reset at"),
                ),
                ("supervisors", models.PositiveIntegerField(default=0, verbose_name="supervisors")),
                ("projects", models.PositiveIntegerField(default=0, verbose_name="projects")),
                ("partners", models.PositiveIntegerField(default=0, verbose_name="partners")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="usage",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="user",
                    ),
                ),
            ],
            options={
                "verbose_name": "usage tracking",
                "verbose_name_plural": "usage tracking",
                "db_table": "pointman_usage_tracking",
                "indexes": [
                    models.Index(fields=["voice_inputs_reset_at"], name="pointman_usage_voice_rst_idx"),
                    models.Index(fields=["expenses_reset_at"], name="pointman_usage_exp_rst_idx"),
                    models.Index(fields=["revenues_reset_at"], name="pointman_usage_rev_rst_idx"),
                ],
            },
        ),
    ]
