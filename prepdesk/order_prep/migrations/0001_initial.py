import uuid

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
            name="Assignment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_id", models.CharField(help_text="Order identifier on the commerce platform", max_length=64)),
                ("order_number", models.CharField(blank=True, help_text="Human readable order number", max_length=64)),
                ("worker_name", models.CharField(blank=True, max_length=150)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("assigned", "Assigned"),
                            ("preparing", "Preparing"),
                            ("waiting", "Waiting"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="assigned",
                        max_length=20,
                    ),
                ),
                ("assigned_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("waiting_at", models.DateTimeField(blank=True, null=True)),
                ("last_status_update_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "remote_status",
                    models.CharField(
                        blank=True,
                        help_text="Last status tag pushed to (or read from) the commerce platform",
                        max_length=64,
                    ),
                ),
                ("remote_status_synced", models.BooleanField(default=True)),
                ("remote_sync_error", models.TextField(blank=True)),
                ("order_snapshot", models.JSONField(blank=True, default=dict)),
                ("snapshot_refreshed_at", models.DateTimeField(blank=True, null=True)),
                ("is_high_priority", models.BooleanField(default=False)),
                ("priority_reason", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                (
                    "worker",
                    models.ForeignKey(
                        help_text="Worker preparing the order",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="prep_assignments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["assigned_at"],
                "indexes": [models.Index(fields=["state", "assigned_at"], name="order_prep__state_5a1c2e_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("order_id",), name="unique_active_assignment_per_order"),
                    models.UniqueConstraint(
                        condition=models.Q(("state__in", ["assigned", "preparing", "waiting"])),
                        fields=("worker",),
                        name="unique_active_assignment_per_worker",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AssignmentHistory",
            fields=[
                ("id", models.UUIDField(editable=False, primary_key=True, serialize=False)),
                ("order_id", models.CharField(max_length=64)),
                ("order_number", models.CharField(blank=True, max_length=64)),
                ("worker_name", models.CharField(blank=True, max_length=150)),
                (
                    "final_state",
                    models.CharField(choices=[("completed", "Completed"), ("cancelled", "Cancelled")], max_length=20),
                ),
                ("assigned_at", models.DateTimeField()),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("waiting_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("duration_seconds", models.PositiveIntegerField(blank=True, null=True)),
                ("remote_status", models.CharField(blank=True, max_length=64)),
                ("remote_status_synced", models.BooleanField(default=True)),
                ("remote_sync_error", models.TextField(blank=True)),
                ("order_snapshot", models.JSONField(blank=True, default=dict)),
                ("is_high_priority", models.BooleanField(default=False)),
                ("priority_reason", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                ("claim_locked", models.BooleanField(default=True)),
                ("reopened_at", models.DateTimeField(blank=True, null=True)),
                ("archived_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "reopened_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reopened_prep_history",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "worker",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="prep_history",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "assignment history",
                "ordering": ["-archived_at"],
                "indexes": [
                    models.Index(fields=["worker", "final_state"], name="order_prep__worker__8d3f41_idx"),
                    models.Index(fields=["final_state", "-archived_at"], name="order_prep__final_s_27b9c0_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("claim_locked", True)),
                        fields=("order_id",),
                        name="unique_claim_lock_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PriorityMark",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_id", models.CharField(max_length=64, unique=True)),
                ("order_number", models.CharField(blank=True, max_length=64)),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("reason", models.CharField(default="Flagged from the preparation dashboard", max_length=255)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="priority_marks",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="ProductLocation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(max_length=100, unique=True)),
                ("product_id", models.CharField(blank=True, db_index=True, max_length=64)),
                ("location", models.CharField(help_text="Bin code (aisle, shelf, bin)", max_length=100)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="product_locations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["sku"],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "entity_type",
                    models.CharField(
                        help_text="Type of entity (Assignment, AssignmentHistory, PriorityMark, ...)", max_length=50
                    ),
                ),
                ("entity_id", models.UUIDField(help_text="UUID of the entity being audited")),
                (
                    "order_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Commerce platform order the entry concerns, if any",
                        max_length=64,
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        help_text="Action performed (claimed, state_changed, reassigned, ...)", max_length=50
                    ),
                ),
                ("old_values", models.JSONField(blank=True, default=dict)),
                ("new_values", models.JSONField(blank=True, default=dict)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("notes", models.TextField(blank=True)),
                (
                    "user",
                    models.ForeignKey(
                        help_text="User who performed the action",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="prep_audit_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["entity_type", "entity_id", "-timestamp"], name="order_prep__entity__4c6e12_idx"),
                    models.Index(fields=["action", "-timestamp"], name="order_prep__action_9e0b7d_idx"),
                ],
            },
        ),
    ]
