from __future__ import annotations

import json
import logging

from django.conf import settings
from django.db import transaction
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import permissions, serializers, status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsTenantEditorOrReadOnly, IsTenantMember
from events.models import Enrollment, Event, EventSpeaker, Participant
from events.views import get_tenant_events

from .documents import (
    build_export_document,
    export_filename,
    extract_template_payload,
)
from .history import (
    log_badges_generated,
    log_template_created,
    log_template_deleted,
    log_template_exported,
    log_template_imported,
    log_template_updated,
)
from .models import BadgeTemplate
from .rendering import (
    BadgeRenderError,
    render_badges_pdf_bytes,
    render_badges_zip_bytes,
    render_preview_pdf_bytes,
)
from .schema import sanitize_filename_part
from .serializers import (
    BadgeTemplateHistoryEventSerializer,
    BadgeTemplateImportSerializer,
    BadgeTemplateListSerializer,
    BadgeTemplateSerializer,
    FieldTokenSerializer,
    GenerationRequestSerializer,
    PreviewRequestSerializer,
)
from .tokens import get_field_tokens

logger = logging.getLogger(__name__)

GENERATION_DISABLED_DETAIL = "Badge generation is not available yet."


class BadgesNotOffered(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Badges are not available for this event's delivery mode."
    default_code = "badges_not_offered"


def get_badge_event(request, event_id: int) -> Event:
    event = get_object_or_404(get_tenant_events(request.user), pk=event_id)
    if not event.badges_available:
        raise BadgesNotOffered()
    return event


def _event_templates(event: Event):
    return BadgeTemplate.objects.filter(event=event, tenant_id=event.tenant_id)


def _actor(request):
    return request.user if request.user.is_authenticated else None


def _event_participants(event: Event, participant_ids: list[int]) -> list[Participant]:
    enrolled = {
        enrollment.participant_id: enrollment.participant
        for enrollment in Enrollment.objects.filter(
            event=event, participant_id__in=participant_ids
        ).select_related("participant")
    }
    unknown_ids = [participant_id for participant_id in participant_ids if participant_id not in enrolled]
    if unknown_ids:
        raise serializers.ValidationError(
            {
                "participant_ids": "Participant(s) not enrolled in this event: "
                + ", ".join(str(participant_id) for participant_id in unknown_ids)
            }
        )
    return [enrolled[participant_id] for participant_id in participant_ids]


def _event_speakers(event: Event) -> list[Participant]:
    return [
        speaker.participant
        for speaker in EventSpeaker.objects.filter(event=event).select_related("participant")
    ]


class BadgeTemplateListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantEditorOrReadOnly]

    @extend_schema(responses=BadgeTemplateListSerializer)
    def get(self, request, event_id: int):
        event = get_badge_event(request, event_id)
        templates = _event_templates(event)
        data = BadgeTemplateSerializer(templates, many=True).data
        return Response({"total": len(data), "templates": data})

    @extend_schema(request=BadgeTemplateSerializer, responses={201: BadgeTemplateSerializer})
    def post(self, request, event_id: int):
        event = get_badge_event(request, event_id)
        serializer = BadgeTemplateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            template = serializer.save(
                event=event,
                tenant=event.tenant,
                created_by=_actor(request),
                updated_by=_actor(request),
            )
            log_template_created(template, actor=request.user)
        logger.info("Badge template %s created for event %s", template.pk, event.pk)
        return Response(BadgeTemplateSerializer(template).data, status=status.HTTP_201_CREATED)


class BadgeTemplateDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantEditorOrReadOnly]
    http_method_names = ["get", "put", "delete", "head", "options"]

    def _get_template(self, request, event_id: int, template_id: int) -> BadgeTemplate:
        event = get_badge_event(request, event_id)
        return get_object_or_404(_event_templates(event), pk=template_id)

    @extend_schema(responses=BadgeTemplateSerializer)
    def get(self, request, event_id: int, template_id: int):
        template = self._get_template(request, event_id, template_id)
        return Response(BadgeTemplateSerializer(template).data)

    @extend_schema(request=BadgeTemplateSerializer, responses=BadgeTemplateSerializer)
    def put(self, request, event_id: int, template_id: int):
        template = self._get_template(request, event_id, template_id)
        name_before = template.name
        serializer = BadgeTemplateSerializer(template, data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            template = serializer.save(updated_by=_actor(request))
            log_template_updated(template, actor=request.user, name_before=name_before)
        logger.info("Badge template %s updated", template.pk)
        return Response(BadgeTemplateSerializer(template).data)

    @extend_schema(responses={status.HTTP_204_NO_CONTENT: None})
    def delete(self, request, event_id: int, template_id: int):
        template = self._get_template(request, event_id, template_id)
        template_pk = template.pk
        with transaction.atomic():
            log_template_deleted(template, actor=request.user)
            template.delete()
        logger.info("Badge template %s deleted", template_pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class BadgeTemplateHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantMember]

    @extend_schema(responses=BadgeTemplateHistoryEventSerializer(many=True))
    def get(self, request, event_id: int, template_id: int):
        event = get_badge_event(request, event_id)
        template = get_object_or_404(_event_templates(event), pk=template_id)
        history = template.history_events.select_related("actor").all()
        return Response(BadgeTemplateHistoryEventSerializer(history, many=True).data)


class BadgeTemplateExportView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantMember]

    @extend_schema(
        request=None,
        responses={
            200: OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="Badge template JSON document.",
            )
        },
    )
    def post(self, request, event_id: int, template_id: int):
        event = get_badge_event(request, event_id)
        template = get_object_or_404(_event_templates(event), pk=template_id)
        document = build_export_document(template)
        log_template_exported(template, actor=request.user)
        response = HttpResponse(
            json.dumps(document, indent=2, ensure_ascii=False),
            content_type="application/json",
        )
        response["Content-Disposition"] = f'attachment; filename="{export_filename(template)}"'
        return response


class BadgeTemplateImportView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantEditorOrReadOnly]

    @extend_schema(request=BadgeTemplateImportSerializer, responses={201: BadgeTemplateSerializer})
    def post(self, request, event_id: int):
        event = get_badge_event(request, event_id)
        import_serializer = BadgeTemplateImportSerializer(data=request.data)
        import_serializer.is_valid(raise_exception=True)
        body_event_id = import_serializer.validated_data.get("event_id")
        if body_event_id is not None and body_event_id != event.pk:
            raise serializers.ValidationError({"event_id": "Does not match the event in the URL."})

        name_override = import_serializer.validated_data.get("name_override") or ""
        payload = extract_template_payload(
            import_serializer.validated_data["template_data"],
            name_override=name_override,
        )
        serializer = BadgeTemplateSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            template = serializer.save(
                event=event,
                tenant=event.tenant,
                created_by=_actor(request),
                updated_by=_actor(request),
            )
            log_template_imported(template, actor=request.user, name_override=name_override)
        logger.info("Badge template %s imported for event %s", template.pk, event.pk)
        return Response(BadgeTemplateSerializer(template).data, status=status.HTTP_201_CREATED)


class BadgeGenerateView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantMember]

    @extend_schema(
        request=GenerationRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="Printable badges as PDF or ZIP.",
            ),
            501: OpenApiResponse(description="Badge generation is not available."),
        },
    )
    def post(self, request, event_id: int):
        event = get_badge_event(request, event_id)
        if not getattr(settings, "BADGE_GENERATION_ENABLED", True):
            return Response(
                {"detail": GENERATION_DISABLED_DETAIL},
                status=status.HTTP_501_NOT_IMPLEMENTED,
            )
        serializer = GenerationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        template = _event_templates(event).filter(pk=data["template_id"]).first()
        if template is None:
            raise serializers.ValidationError(
                {"template_id": "Template does not belong to this event."}
            )
        participants = _event_participants(event, data["participant_ids"])
        if data["include_speakers"]:
            listed_ids = {participant.pk for participant in participants}
            participants.extend(
                speaker for speaker in _event_speakers(event) if speaker.pk not in listed_ids
            )
        if not participants:
            raise serializers.ValidationError({"detail": "Select at least one participant."})

        render = render_badges_zip_bytes if data["format"] == "zip" else render_badges_pdf_bytes
        try:
            artifact = render(
                template,
                event=event,
                participants=participants,
                double_sided=data["double_sided"],
                base_url=request.build_absolute_uri("/"),
            )
        except BadgeRenderError as exc:
            logger.warning(
                "Badge generation failed for template %s: %s", template.pk, exc.detail
            )
            return Response({"detail": exc.detail}, status=exc.status_code)

        log_badges_generated(
            template,
            actor=request.user,
            participant_count=len(participants),
            output_format=data["format"],
        )
        logger.info(
            "Generated %s badge(s) for template %s as %s",
            len(participants),
            template.pk,
            data["format"],
        )
        extension = "zip" if data["format"] == "zip" else "pdf"
        content_type = "application/zip" if extension == "zip" else "application/pdf"
        response = HttpResponse(artifact, content_type=content_type)
        filename = f"badges_{sanitize_filename_part(template.name)}.{extension}"
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


class BadgePreviewView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTenantMember]

    @extend_schema(
        request=PreviewRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="Single badge preview PDF.",
            )
        },
    )
    def post(self, request, event_id: int):
        event = get_badge_event(request, event_id)
        serializer = PreviewRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        template = _event_templates(event).filter(pk=data["template_id"]).first()
        if template is None:
            raise serializers.ValidationError(
                {"template_id": "Template does not belong to this event."}
            )
        if data["side"] == "back" and not template.is_double_sided:
            raise serializers.ValidationError({"side": "This template has no back side."})

        participant = None
        participant_id = data.get("participant_id")
        if participant_id is not None:
            is_linked = (
                Enrollment.objects.filter(event=event, participant_id=participant_id).exists()
                or EventSpeaker.objects.filter(event=event, participant_id=participant_id).exists()
            )
            if not is_linked:
                raise serializers.ValidationError(
                    {"participant_id": "Participant is not linked to this event."}
                )
            participant = Participant.objects.get(pk=participant_id)

        try:
            pdf_bytes = render_preview_pdf_bytes(
                template,
                event=event,
                participant=participant,
                side=data["side"],
                base_url=request.build_absolute_uri("/"),
            )
        except BadgeRenderError as exc:
            return Response({"detail": exc.detail}, status=exc.status_code)
        response = HttpResponse(pdf_bytes, content_type="application/pdf")
        response["Content-Disposition"] = (
            f'inline; filename="badge-preview-{template.pk}-{data["side"]}.pdf"'
        )
        return response


class FieldTokenListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(responses=FieldTokenSerializer(many=True))
    def get(self, request):
        return Response(get_field_tokens())
