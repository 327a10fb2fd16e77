from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from events.models import Event, Tenant

from .schema import DEFAULT_BADGES_PER_PAGE


class BadgeTemplate(models.Model):
    class ParticipantType(models.TextChoices):
        ALL = "all", _("All")
        PARTICIPANT = "participant", _("Participant")
        SPEAKER = "speaker", _("Speaker")
        STAFF = "staff", _("Staff")

    class PageOrientation(models.TextChoices):
        PORTRAIT = "portrait", _("Portrait")
        LANDSCAPE = "landscape", _("Landscape")

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="badge_templates")
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="badge_templates")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    participant_type = models.CharField(
        max_length=20,
        choices=ParticipantType.choices,
        default=ParticipantType.ALL,
    )
    is_double_sided = models.BooleanField(default=False)  # pyright: ignore[reportArgumentType]
    front_config = models.JSONField(default=dict)
    back_config = models.JSONField(null=True, blank=True)
    badges_per_page = models.PositiveSmallIntegerField(default=DEFAULT_BADGES_PER_PAGE)
    page_orientation = models.CharField(
        max_length=20,
        choices=PageOrientation.choices,
        default=PageOrientation.PORTRAIT,
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="badge_templates_created",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="badge_templates_updated",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "-created_at"]
        indexes = [
            models.Index(fields=["event", "name"], name="badge_tmpl_event_name_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self.is_double_sided:
            self.back_config = None
        if self.event_id and not self.tenant_id:
            self.tenant_id = self.event.tenant_id
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return str(self.name)

    @property
    def effective_back_config(self):
        return self.back_config if self.is_double_sided else None


class BadgeTemplateHistoryEvent(models.Model):
    class EventType(models.TextChoices):
        CREATED = "created", "Created"
        UPDATED = "updated", "Updated"
        DELETED = "deleted", "Deleted"
        IMPORTED = "imported", "Imported"
        EXPORTED = "exported", "Exported"
        GENERATED = "generated", "Generated"

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="badge_template_history_events"
    )
    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="badge_template_history_events"
    )
    template = models.ForeignKey(
        BadgeTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="history_events",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="badge_template_history_events",
    )
    event_type = models.CharField(max_length=20, choices=EventType.choices)
    event_at = models.DateTimeField(default=timezone.now)
    template_name_snapshot = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-event_at", "-id"]
        indexes = [
            models.Index(fields=["template", "-event_at"], name="badge_hist_template_idx"),
            models.Index(fields=["event", "-event_at"], name="badge_hist_event_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Badge template history events are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Badge template history events are immutable.")

    def __str__(self) -> str:
        return f"{self.template_name_snapshot} · {self.event_type} · {self.event_at:%Y-%m-%d}"
