from django.contrib import admin

from .models import Enrollment, Event, EventSpeaker, Participant, Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "created_at")
    search_fields = ("name", "slug")


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("title", "tenant", "start_date", "delivery_mode")
    list_filter = ("delivery_mode", "tenant")
    search_fields = ("title", "venue")


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "tenant", "profession")
    search_fields = ("first_name", "last_name", "email")


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("event", "participant", "status")
    list_filter = ("status",)


@admin.register(EventSpeaker)
class EventSpeakerAdmin(admin.ModelAdmin):
    list_display = ("event", "participant")
