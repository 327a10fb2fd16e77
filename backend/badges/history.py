from __future__ import annotations

from typing import Any

from django.utils import timezone

from .models import BadgeTemplate, BadgeTemplateHistoryEvent


def create_badge_template_history_event(
    template: BadgeTemplate,
    *,
    event_type: str,
    actor=None,
    metadata: dict[str, Any] | None = None,
    event_at=None,
    keep_template_link: bool = True,
) -> BadgeTemplateHistoryEvent:
    return BadgeTemplateHistoryEvent.objects.create(
        tenant_id=template.tenant_id,
        event_id=template.event_id,
        template=template if keep_template_link else None,
        actor=actor if actor and actor.is_authenticated else None,
        event_type=event_type,
        event_at=event_at or timezone.now(),
        template_name_snapshot=template.name,
        metadata=metadata or {},
    )


def log_template_created(template: BadgeTemplate, *, actor=None, metadata=None):
    return create_badge_template_history_event(
        template,
        event_type=BadgeTemplateHistoryEvent.EventType.CREATED,
        actor=actor,
        metadata=metadata,
    )


def log_template_updated(template: BadgeTemplate, *, actor=None, name_before: str = ""):
    metadata = {}
    if name_before and name_before != template.name:
        metadata["name_before"] = name_before
    return create_badge_template_history_event(
        template,
        event_type=BadgeTemplateHistoryEvent.EventType.UPDATED,
        actor=actor,
        metadata=metadata,
    )


def log_template_deleted(template: BadgeTemplate, *, actor=None):
    # Written before the row disappears; the link would be nulled by the delete anyway.
    return create_badge_template_history_event(
        template,
        event_type=BadgeTemplateHistoryEvent.EventType.DELETED,
        actor=actor,
        metadata={"template_id": template.pk},
        keep_template_link=False,
    )


def log_template_imported(template: BadgeTemplate, *, actor=None, name_override: str = ""):
    return create_badge_template_history_event(
        template,
        event_type=BadgeTemplateHistoryEvent.EventType.IMPORTED,
        actor=actor,
        metadata={"name_override": name_override} if name_override else {},
    )


def log_template_exported(template: BadgeTemplate, *, actor=None):
    return create_badge_template_history_event(
        template,
        event_type=BadgeTemplateHistoryEvent.EventType.EXPORTED,
        actor=actor,
    )


def log_badges_generated(
    template: BadgeTemplate,
    *,
    actor=None,
    participant_count: int,
    output_format: str,
):
    return create_badge_template_history_event(
        template,
        event_type=BadgeTemplateHistoryEvent.EventType.GENERATED,
        actor=actor,
        metadata={"participant_count": participant_count, "format": output_format},
    )
