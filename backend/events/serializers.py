from rest_framework import serializers

from .models import Enrollment, Event, Participant


class EventSerializer(serializers.ModelSerializer):
    badges_available = serializers.BooleanField(read_only=True)

    class Meta:
        model = Event
        fields = [
            "id",
            "tenant",
            "title",
            "start_date",
            "end_date",
            "venue",
            "delivery_mode",
            "badges_available",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class EnrollmentParticipantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Participant
        fields = ["id", "first_name", "last_name", "title", "email"]
        read_only_fields = fields


class EnrollmentSerializer(serializers.ModelSerializer):
    participant = EnrollmentParticipantSerializer(read_only=True)

    class Meta:
        model = Enrollment
        fields = ["id", "event", "participant", "status", "created_at"]
        read_only_fields = fields
