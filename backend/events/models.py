from django.db import models
from django.utils.translation import gettext_lazy as _

from badges.schema import delivery_mode_offers_badges


class Tenant(models.Model):
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Event(models.Model):
    class DeliveryMode(models.TextChoices):
        RESIDENTIAL = "RESIDENTIAL", _("Residential")
        HYBRID = "HYBRID", _("Hybrid")
        FAD = "FAD", _("Distance learning")
        WEBINAR = "WEBINAR", _("Webinar")

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="events")
    title = models.CharField(max_length=255)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    venue = models.CharField(max_length=255, blank=True)
    delivery_mode = models.CharField(
        max_length=20,
        choices=DeliveryMode.choices,
        default=DeliveryMode.RESIDENTIAL,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_date", "title"]

    def __str__(self) -> str:
        return self.title

    @property
    def badges_available(self) -> bool:
        return delivery_mode_offers_badges(self.delivery_mode)

    @property
    def date_label(self) -> str:
        if self.start_date and self.end_date and self.end_date != self.start_date:
            return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"
        if self.start_date:
            return self.start_date.isoformat()
        return ""


class Participant(models.Model):
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="participants")
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)
    title = models.CharField(max_length=50, blank=True)
    profession = models.CharField(max_length=150, blank=True)
    discipline = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["last_name", "first_name"]

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Enrollment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLED = "cancelled", _("Cancelled")

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="enrollments")
    participant = models.ForeignKey(
        Participant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="enrollments",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "participant"],
                name="enrollment_unique_event_participant",
            ),
        ]


class EventSpeaker(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="speakers")
    participant = models.ForeignKey(
        Participant, on_delete=models.CASCADE, related_name="speaking_at"
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "participant"],
                name="event_speaker_unique_event_participant",
            ),
        ]
