from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from badges.schema import sanitize_filename_part

from .errors import (
    BadgeApiError,
    CapabilityUnavailableError,
    GenerationFailedError,
    GenerationUnavailableError,
    SelectionRequiredError,
)
from .layout import BadgeArtifact, BadgeTemplate, GenerationRequest

logger = logging.getLogger(__name__)


def generation_filename(template: BadgeTemplate, output_format: str = "pdf") -> str:
    return f"badges_{sanitize_filename_part(template.name)}.{output_format}"


def _participant(enrollment: dict[str, Any]) -> dict[str, Any] | None:
    participant = enrollment.get("participant")
    return participant if isinstance(participant, dict) else None


class BadgeGenerator:
    """Audience selection and badge generation for one template."""

    def __init__(self, client, event_id: int, template: BadgeTemplate):
        self.client = client
        self.event_id = event_id
        self.template = template
        self.enrollments: list[dict[str, Any]] = []
        self.selected_ids: list[int] = []
        self.search = ""
        self.include_speakers = False
        self.output_format = "pdf"
        self.generating = False

    def load_audience(self) -> list[dict[str, Any]]:
        self.enrollments = self.client.list_event_enrollments(self.event_id)
        return self.enrollments

    def set_search(self, term: str) -> None:
        self.search = term or ""

    def filtered_enrollments(self) -> list[dict[str, Any]]:
        term = self.search.lower()
        matches = []
        for enrollment in self.enrollments:
            participant = _participant(enrollment)
            if participant is None:
                continue
            full_name = f"{participant.get('first_name', '')} {participant.get('last_name', '')}".lower()
            if term in full_name:
                matches.append(enrollment)
        return matches

    # Selection

    def toggle_selection(self, enrollment_id: int) -> None:
        if enrollment_id in self.selected_ids:
            self.selected_ids = [value for value in self.selected_ids if value != enrollment_id]
        else:
            self.selected_ids = [*self.selected_ids, enrollment_id]

    def select_all(self) -> None:
        self.selected_ids = [enrollment["id"] for enrollment in self.filtered_enrollments()]

    def select_confirmed(self) -> None:
        self.selected_ids = [
            enrollment["id"]
            for enrollment in self.filtered_enrollments()
            if enrollment.get("status") == "confirmed"
        ]

    def clear_selection(self) -> None:
        self.selected_ids = []

    def selected_participant_ids(self) -> list[int]:
        by_enrollment = {
            enrollment["id"]: _participant(enrollment) for enrollment in self.enrollments
        }
        participant_ids = []
        for enrollment_id in self.selected_ids:
            participant = by_enrollment.get(enrollment_id)
            if participant is not None and participant.get("id") not in participant_ids:
                participant_ids.append(participant["id"])
        return participant_ids

    # Generation

    def build_request(self) -> GenerationRequest:
        return GenerationRequest(
            template_id=self.template.id,
            participant_ids=self.selected_participant_ids(),
            include_speakers=self.include_speakers,
            format=self.output_format,
            double_sided=self.template.is_double_sided,
        )

    def generate(self, output_dir: str | Path | None = None) -> BadgeArtifact | None:
        """Request the badges for the current selection.

        Returns ``None`` while a previous request is still running. When ``output_dir``
        is given the artifact is also written there.
        """
        if not self.selected_ids:
            raise SelectionRequiredError()
        if self.generating:
            return None

        request = self.build_request()
        self.generating = True
        try:
            response = self.client.generate_badges(self.event_id, request)
        except CapabilityUnavailableError as exc:
            logger.info("Badge generation is not available for event %s", self.event_id)
            raise GenerationUnavailableError() from exc
        except BadgeApiError as exc:
            logger.warning("Badge generation for event %s failed: %s", self.event_id, exc.detail)
            raise GenerationFailedError() from exc
        finally:
            self.generating = False

        artifact = BadgeArtifact(
            filename=generation_filename(self.template, request.format),
            content=response.body,
            content_type=response.content_type or "application/pdf",
        )
        if output_dir is not None:
            artifact.write_to(output_dir)
        return artifact
