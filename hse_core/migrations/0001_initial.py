# hse_core/migrations/0001_initial.py

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import migrations, models

from hse_core import choices
from hse_core.workflows.tables import HAZARD_STATES, LICENSE_STATES, TRAINING_STATES


def _status_choices(states):
    return [(s, s.replace("_", " ").title()) for s in states]


KIND_CHOICES = [("hazard", "Hazard"), ("license", "License"), ("training", "Training")]


def _user_fk(related_name, on_delete=django.db.models.deletion.SET_NULL):
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=on_delete,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ------------------------------------------------------------
        # Roles / audit
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("role", models.CharField(max_length=64)),
                ("department", models.CharField(blank=True, max_length=120)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="hse_roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["user_id", "role"],
                "unique_together": {("user", "role")},
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=255)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="TransitionAuditEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=KIND_CHOICES, max_length=32)),
                ("object_id", models.PositiveBigIntegerField()),
                ("action", models.CharField(max_length=32)),
                ("from_status", models.CharField(max_length=32)),
                ("to_status", models.CharField(max_length=32)),
                ("actor_role", models.CharField(blank=True, max_length=64)),
                ("reason", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("actor", _user_fk("hse_transitions", django.db.models.deletion.PROTECT)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["kind", "object_id"], name="hse_transition_kind_obj_idx")],
            },
        ),
        migrations.CreateModel(
            name="AttachmentRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=KIND_CHOICES, max_length=32)),
                ("object_id", models.PositiveBigIntegerField()),
                ("file_name", models.CharField(max_length=255)),
                ("content_type", models.CharField(blank=True, max_length=120)),
                ("size_bytes", models.PositiveBigIntegerField()),
                ("description", models.CharField(blank=True, max_length=500)),
                ("uploaded_at", models.DateTimeField(auto_now_add=True)),
                ("uploaded_by", _user_fk("hse_attachments")),
            ],
            options={
                "ordering": ["-uploaded_at", "-id"],
                "indexes": [models.Index(fields=["kind", "object_id"], name="hse_attachment_kind_obj_idx")],
            },
        ),
        # ------------------------------------------------------------
        # Hazards
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="Hazard",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("category", models.CharField(choices=choices.HazardCategory.choices, max_length=32)),
                (
                    "hazard_type",
                    models.CharField(
                        choices=choices.HazardType.choices,
                        default=choices.HazardType.OTHER,
                        max_length=32,
                    ),
                ),
                ("location", models.CharField(blank=True, max_length=255)),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=_status_choices(HAZARD_STATES),
                        db_index=True,
                        default="OPEN",
                        editable=False,
                        max_length=32,
                    ),
                ),
                (
                    "severity",
                    models.PositiveSmallIntegerField(
                        choices=choices.Severity.choices,
                        default=choices.Severity.MODERATE,
                    ),
                ),
                ("identified_date", models.DateField(db_index=True, default=django.utils.timezone.localdate)),
                ("expected_resolution_date", models.DateField(blank=True, null=True)),
                ("reporter_department", models.CharField(blank=True, max_length=120)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("status_changed_at", models.DateTimeField(blank=True, null=True)),
                ("status_notes", models.TextField(blank=True)),
                ("reporter", _user_fk("reported_hazards")),
                ("created_by", _user_fk("hazards_created")),
            ],
            options={"ordering": ["-identified_date", "-id"]},
        ),
        migrations.CreateModel(
            name="RiskAssessment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assessment_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "probability_score",
                    models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)]),
                ),
                (
                    "severity_score",
                    models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)]),
                ),
                ("risk_score", models.PositiveSmallIntegerField(editable=False)),
                ("risk_level", models.PositiveSmallIntegerField(choices=choices.RiskLevel.choices, editable=False)),
                ("next_review_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "hazard",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="risk_assessments",
                        to="hse_core.hazard",
                    ),
                ),
                ("assessor", _user_fk("risk_assessments")),
            ],
            options={"ordering": ["-assessment_date", "-id"]},
        ),
        migrations.AddField(
            model_name="hazard",
            name="current_risk_assessment",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="hse_core.riskassessment",
            ),
        ),
        migrations.CreateModel(
            name="MitigationAction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("description", models.TextField()),
                (
                    "action_type",
                    models.CharField(
                        choices=choices.MitigationType.choices,
                        default=choices.MitigationType.ADMINISTRATIVE,
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.PositiveSmallIntegerField(
                        choices=choices.Priority.choices,
                        default=choices.Priority.MEDIUM,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=choices.MitigationStatus.choices,
                        default=choices.MitigationStatus.PLANNED,
                        max_length=32,
                    ),
                ),
                ("target_date", models.DateField()),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "hazard",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="mitigation_actions",
                        to="hse_core.hazard",
                    ),
                ),
                ("assigned_to", _user_fk("mitigation_actions")),
            ],
            options={"ordering": ["target_date", "id"]},
        ),
        # ------------------------------------------------------------
        # Licenses
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="License",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("license_number", models.CharField(max_length=100, unique=True)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("license_type", models.CharField(choices=choices.LicenseType.choices, max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=_status_choices(LICENSE_STATES),
                        db_index=True,
                        default="DRAFT",
                        editable=False,
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.PositiveSmallIntegerField(
                        choices=choices.Priority.choices,
                        default=choices.Priority.MEDIUM,
                    ),
                ),
                (
                    "risk_level",
                    models.PositiveSmallIntegerField(
                        choices=choices.RiskLevel.choices,
                        default=choices.RiskLevel.MEDIUM,
                    ),
                ),
                ("issuing_authority", models.CharField(max_length=200)),
                ("holder_name", models.CharField(max_length=200)),
                ("department", models.CharField(blank=True, max_length=120)),
                ("issued_date", models.DateField()),
                ("expiry_date", models.DateField(db_index=True)),
                ("renewal_required", models.BooleanField(default=True)),
                ("renewal_period_days", models.PositiveIntegerField(default=90)),
                ("next_renewal_date", models.DateField(blank=True, null=True)),
                ("scope", models.TextField(blank=True)),
                ("is_critical_license", models.BooleanField(default=False)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("activated_at", models.DateTimeField(blank=True, null=True)),
                ("suspended_at", models.DateTimeField(blank=True, null=True)),
                ("revoked_at", models.DateTimeField(blank=True, null=True)),
                ("status_changed_at", models.DateTimeField(blank=True, null=True)),
                ("status_notes", models.TextField(blank=True)),
                ("holder", _user_fk("held_licenses")),
                ("created_by", _user_fk("licenses_created")),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="LicenseCondition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("condition_type", models.CharField(blank=True, max_length=100)),
                ("description", models.TextField()),
                ("is_mandatory", models.BooleanField(default=True)),
                ("due_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=choices.ConditionStatus.choices,
                        default=choices.ConditionStatus.PENDING,
                        max_length=32,
                    ),
                ),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("responsible_person", models.CharField(blank=True, max_length=200)),
                (
                    "license",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conditions",
                        to="hse_core.license",
                    ),
                ),
            ],
            options={"ordering": ["due_date", "id"]},
        ),
        migrations.CreateModel(
            name="LicenseRenewal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("previous_expiry_date", models.DateField()),
                ("new_expiry_date", models.DateField()),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "license",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="renewals",
                        to="hse_core.license",
                    ),
                ),
                ("renewed_by", _user_fk("license_renewals")),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        # ------------------------------------------------------------
        # Trainings
        # ------------------------------------------------------------
        migrations.CreateModel(
            name="Training",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("training_code", models.CharField(max_length=50, unique=True)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                (
                    "training_type",
                    models.CharField(
                        choices=choices.TrainingType.choices,
                        default=choices.TrainingType.SAFETY,
                        max_length=32,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=choices.TrainingCategory.choices,
                        default=choices.TrainingCategory.MANDATORY,
                        max_length=32,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=_status_choices(TRAINING_STATES),
                        db_index=True,
                        default="DRAFT",
                        editable=False,
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.PositiveSmallIntegerField(
                        choices=choices.Priority.choices,
                        default=choices.Priority.MEDIUM,
                    ),
                ),
                (
                    "delivery_method",
                    models.CharField(
                        choices=choices.DeliveryMethod.choices,
                        default=choices.DeliveryMethod.CLASSROOM,
                        max_length=32,
                    ),
                ),
                ("scheduled_start_date", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("scheduled_end_date", models.DateTimeField(blank=True, null=True)),
                ("actual_start_date", models.DateTimeField(blank=True, null=True)),
                ("actual_end_date", models.DateTimeField(blank=True, null=True)),
                ("venue", models.CharField(blank=True, max_length=255)),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("instructor_name", models.CharField(blank=True, max_length=200)),
                ("min_participants", models.PositiveIntegerField(default=1)),
                ("max_participants", models.PositiveIntegerField(default=20)),
                ("status_changed_at", models.DateTimeField(blank=True, null=True)),
                ("status_notes", models.TextField(blank=True)),
                ("created_by", _user_fk("trainings_created")),
            ],
            options={"ordering": ["-scheduled_start_date", "-id"]},
        ),
        migrations.CreateModel(
            name="TrainingParticipant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(blank=True, max_length=200)),
                ("department", models.CharField(blank=True, max_length=120)),
                (
                    "status",
                    models.CharField(
                        choices=choices.ParticipantStatus.choices,
                        default=choices.ParticipantStatus.ENROLLED,
                        max_length=32,
                    ),
                ),
                ("due_date", models.DateField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "training",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="hse_core.training",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="training_enrolments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["training_id", "id"],
                "unique_together": {("training", "user")},
            },
        ),
    ]
