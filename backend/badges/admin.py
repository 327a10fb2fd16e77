from django.contrib import admin

from .models import BadgeTemplate, BadgeTemplateHistoryEvent


@admin.register(BadgeTemplate)
class BadgeTemplateAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "event",
        "tenant",
        "participant_type",
        "is_double_sided",
        "badges_per_page",
        "updated_at",
    )
    list_filter = ("participant_type", "is_double_sided", "page_orientation", "tenant")
    search_fields = ("name", "event__title")
    readonly_fields = ("created_by", "updated_by", "created_at", "updated_at")


@admin.register(BadgeTemplateHistoryEvent)
class BadgeTemplateHistoryEventAdmin(admin.ModelAdmin):
    list_display = ("template_name_snapshot", "event", "event_type", "actor", "event_at")
    list_filter = ("event_type", "event_at")
    search_fields = ("template_name_snapshot",)
    readonly_fields = (
        "tenant",
        "event",
        "template",
        "actor",
        "event_type",
        "event_at",
        "template_name_snapshot",
        "metadata",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
