from __future__ import annotations

import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from rest_framework import serializers

from badges.documents import extract_template_payload
from badges.history import log_template_imported
from badges.serializers import BadgeTemplateSerializer
from events.models import Event


class Command(BaseCommand):
    help = "Create a badge template for an event from an exported JSON document."

    def add_arguments(self, parser):
        parser.add_argument("event_id", type=int, help="Event that receives the template.")
        parser.add_argument("path", help="Path to the exported badge template JSON file.")
        parser.add_argument(
            "--name",
            default="",
            help="Name for the imported template instead of the one in the document.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Validate the document without creating the template.",
        )

    def handle(self, *args, **options):
        event = Event.objects.filter(pk=options["event_id"]).first()
        if event is None:
            raise CommandError(f"Event with id {options['event_id']} was not found.")
        if not event.badges_available:
            raise CommandError("Badges are not available for this event's delivery mode.")

        path = Path(options["path"])
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f"Could not read {path}: {exc}") from exc

        try:
            payload = extract_template_payload(document, name_override=options["name"].strip())
            serializer = BadgeTemplateSerializer(data=payload)
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            raise CommandError(f"Invalid badge template document: {exc.detail}") from exc

        if options["dry_run"]:
            self.stdout.write(
                self.style.WARNING(f"Dry run complete: '{payload['name']}' is a valid template.")
            )
            return

        with transaction.atomic():
            template = serializer.save(event=event, tenant=event.tenant)
            log_template_imported(template, name_override=options["name"].strip())
        self.stdout.write(
            self.style.SUCCESS(f"Imported badge template '{template.name}' (id={template.pk}).")
        )
