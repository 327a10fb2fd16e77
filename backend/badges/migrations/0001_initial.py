import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("events", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="BadgeTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "participant_type",
                    models.CharField(
                        choices=[
                            ("all", "All"),
                            ("participant", "Participant"),
                            ("speaker", "Speaker"),
                            ("staff", "Staff"),
                        ],
                        default="all",
                        max_length=20,
                    ),
                ),
                ("is_double_sided", models.BooleanField(default=False)),
                ("front_config", models.JSONField(default=dict)),
                ("back_config", models.JSONField(blank=True, null=True)),
                ("badges_per_page", models.PositiveSmallIntegerField(default=8)),
                (
                    "page_orientation",
                    models.CharField(
                        choices=[("portrait", "Portrait"), ("landscape", "Landscape")],
                        default="portrait",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="badge_templates_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="badge_templates",
                        to="events.event",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="badge_templates",
                        to="events.tenant",
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="badge_templates_updated",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["name", "-created_at"],
                "indexes": [
                    models.Index(fields=["event", "name"], name="badge_tmpl_event_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BadgeTemplateHistoryEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("updated", "Updated"),
                            ("deleted", "Deleted"),
                            ("imported", "Imported"),
                            ("exported", "Exported"),
                            ("generated", "Generated"),
                        ],
                        max_length=20,
                    ),
                ),
                ("event_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("template_name_snapshot", models.CharField(blank=True, max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="badge_template_history_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="badge_template_history_events",
                        to="events.event",
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="history_events",
                        to="badges.badgetemplate",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="badge_template_history_events",
                        to="events.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["-event_at", "-id"],
                "indexes": [
                    models.Index(fields=["template", "-event_at"], name="badge_hist_template_idx"),
                    models.Index(fields=["event", "-event_at"], name="badge_hist_event_idx"),
                ],
            },
        ),
    ]
