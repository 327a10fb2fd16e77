from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .models import BadgeTemplate, BadgeTemplateHistoryEvent
from .registry import validate_badge_config
from .schema import BADGE_SIDES, GENERATION_FORMATS


def _raise_drf_validation_error(exc: DjangoValidationError):
    if hasattr(exc, "message_dict"):
        raise serializers.ValidationError(exc.message_dict) from exc
    raise serializers.ValidationError(exc.messages) from exc


class BadgeTemplateSerializer(serializers.ModelSerializer):
    tenant_id = serializers.IntegerField(read_only=True)
    event_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = BadgeTemplate
        fields = [
            "id",
            "tenant_id",
            "event_id",
            "name",
            "description",
            "participant_type",
            "is_double_sided",
            "front_config",
            "back_config",
            "badges_per_page",
            "page_orientation",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_at", "updated_at"]
        extra_kwargs = {
            "front_config": {"required": True},
            "badges_per_page": {"min_value": 1, "max_value": 20},
        }

    def validate(self, attrs):
        attrs = super().validate(attrs)
        instance = getattr(self, "instance", None)
        enforce_bounds = bool(getattr(settings, "BADGE_ENFORCE_PRINTABLE_AREA", False))

        is_double_sided = attrs.get(
            "is_double_sided",
            instance.is_double_sided if instance is not None else False,
        )
        front_config = attrs.get("front_config")
        if front_config is None and instance is not None:
            front_config = instance.front_config
        try:
            validate_badge_config(
                front_config,
                field_name="front_config",
                enforce_bounds=enforce_bounds,
            )
        except DjangoValidationError as exc:
            _raise_drf_validation_error(exc)

        if not is_double_sided:
            attrs["back_config"] = None
            return attrs

        back_config = attrs.get("back_config")
        if back_config is None:
            raise serializers.ValidationError(
                {"back_config": "Back config is required for double-sided templates."}
            )
        try:
            validate_badge_config(
                back_config,
                field_name="back_config",
                enforce_bounds=enforce_bounds,
            )
        except DjangoValidationError as exc:
            _raise_drf_validation_error(exc)
        attrs["back_config"] = back_config
        return attrs


class BadgeTemplateListSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    templates = BadgeTemplateSerializer(many=True)


class BadgeTemplateImportSerializer(serializers.Serializer):
    event_id = serializers.IntegerField(required=False)
    template_data = serializers.JSONField()
    name_override = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=255,
    )

    def validate_name_override(self, value):
        return str(value or "").strip()


class GenerationRequestSerializer(serializers.Serializer):
    template_id = serializers.IntegerField(min_value=1)
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=True,
        required=False,
        default=list,
    )
    include_speakers = serializers.BooleanField(required=False, default=False)
    format = serializers.ChoiceField(choices=GENERATION_FORMATS, required=False, default="pdf")
    double_sided = serializers.BooleanField(required=False, default=False)

    def validate_participant_ids(self, value):
        deduplicated = []
        for participant_id in value:
            if participant_id not in deduplicated:
                deduplicated.append(participant_id)
        return deduplicated


class PreviewRequestSerializer(serializers.Serializer):
    template_id = serializers.IntegerField(min_value=1)
    participant_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    side = serializers.ChoiceField(choices=BADGE_SIDES, required=False, default="front")


class FieldTokenSerializer(serializers.Serializer):
    token = serializers.CharField()
    label = serializers.CharField()


class BadgeTemplateHistoryEventSerializer(serializers.ModelSerializer):
    actor = serializers.SerializerMethodField()

    class Meta:
        model = BadgeTemplateHistoryEvent
        fields = [
            "id",
            "template",
            "event_type",
            "event_at",
            "template_name_snapshot",
            "actor",
            "metadata",
        ]

    def get_actor(self, obj):
        actor = getattr(obj, "actor", None)
        if actor is None:
            return None
        return {
            "id": actor.id,
            "username": actor.username,
            "role": getattr(actor, "role", ""),
        }
