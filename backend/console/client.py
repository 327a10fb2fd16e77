from __future__ import annotations

from dataclasses import dataclass
from email.message import Message
from json import JSONDecodeError
import json
import logging
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen

from decouple import config

from .errors import BadgeApiError, CapabilityUnavailableError
from .layout import BadgeTemplate, GenerationRequest

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


@dataclass(frozen=True)
class ApiCredentials:
    base_url: str
    token: str = ""
    auth_scheme: str = "Token"
    timeout_seconds: int = 30

    @classmethod
    def from_env(cls) -> ApiCredentials:
        return cls(
            base_url=config("BADGE_CONSOLE_API_URL", default="http://localhost:8000/api"),
            token=config("BADGE_CONSOLE_API_TOKEN", default=""),
            auth_scheme=config("BADGE_CONSOLE_AUTH_SCHEME", default="Token"),
            timeout_seconds=config("BADGE_CONSOLE_TIMEOUT_SECONDS", cast=int, default=30),
        )

    def authorization_header(self) -> str:
        token = self.token.strip()
        if not token:
            return ""
        scheme = self.auth_scheme.strip()
        return f"{scheme} {token}" if scheme else token


@dataclass
class ApiResponse:
    status: int
    body: bytes
    content_type: str = ""
    filename: str | None = None

    def json(self) -> Any:
        if not self.body.strip():
            return None
        try:
            return json.loads(self.body.decode("utf-8"))
        except (JSONDecodeError, UnicodeDecodeError) as exc:
            raise BadgeApiError("Server returned invalid JSON.", status_code=self.status) from exc


def _extract_error_message(raw_body: str) -> str:
    if not raw_body.strip():
        return "No additional details were returned."
    try:
        payload = json.loads(raw_body)
    except JSONDecodeError:
        return "Server returned a non-JSON error response."
    if isinstance(payload, list) and payload and isinstance(payload[0], str):
        return payload[0]
    if not isinstance(payload, dict):
        return "Server returned an error."

    detail = payload.get("detail")
    if isinstance(detail, str) and detail.strip():
        return detail.strip()

    # DRF validation errors are keyed by field path.
    for key, value in payload.items():
        if isinstance(value, list) and value and isinstance(value[0], str):
            return f"{key}: {value[0]}"
        if isinstance(value, str) and value.strip():
            return f"{key}: {value.strip()}"
    return "Server returned an error."


def _filename_from_disposition(header_value: str | None) -> str | None:
    if not header_value:
        return None
    message = Message()
    message["Content-Disposition"] = header_value
    return message.get_filename()


class BadgeApiClient:
    """HTTP client for the badge template store and render backend."""

    def __init__(self, credentials: ApiCredentials):
        self.credentials = credentials

    def _url(self, path: str) -> str:
        base_url = self.credentials.base_url.strip()
        if not base_url:
            raise BadgeApiError("Badge API base URL is not configured.")
        url = urljoin(f"{base_url.rstrip('/')}/", path.lstrip("/"))
        return url

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        accept: str = "application/json",
    ) -> ApiResponse:
        request_data = None
        if payload is not None:
            request_data = json.dumps(payload).encode("utf-8")
        request = Request(url=self._url(path), data=request_data, method=method.upper())
        request.add_header("Accept", accept)
        if request_data is not None:
            request.add_header("Content-Type", "application/json")
        authorization = self.credentials.authorization_header()
        if authorization:
            request.add_header("Authorization", authorization)

        timeout_seconds = max(1, int(self.credentials.timeout_seconds))
        try:
            with urlopen(request, timeout=timeout_seconds) as response:
                headers = response.headers
                return ApiResponse(
                    status=response.status,
                    body=response.read(),
                    content_type=headers.get("Content-Type", "") if headers else "",
                    filename=_filename_from_disposition(
                        headers.get("Content-Disposition") if headers else None
                    ),
                )
        except HTTPError as exc:
            raw_body = exc.read().decode("utf-8", errors="replace")
            error_message = _extract_error_message(raw_body)
            logger.warning("%s %s failed with HTTP %s", method.upper(), path, exc.code)
            if exc.code == 501:
                raise CapabilityUnavailableError(error_message, status_code=501) from exc
            raise BadgeApiError(error_message, status_code=exc.code) from exc
        except (URLError, TimeoutError, socket.timeout) as exc:
            reason = getattr(exc, "reason", exc)
            logger.warning("%s %s could not reach the badge API: %s", method.upper(), path, reason)
            if isinstance(reason, (TimeoutError, socket.timeout)):
                raise BadgeApiError("Badge API request timed out. Please retry shortly.") from exc
            raise BadgeApiError("Badge API is currently unavailable. Please retry shortly.") from exc

    def _json(self, method: str, path: str, **kwargs) -> Any:
        return self._request(method, path, **kwargs).json()

    # Template store

    def list_templates(self, event_id: int) -> list[BadgeTemplate]:
        body = self._json("GET", f"events/{event_id}/badge-templates") or {}
        return [BadgeTemplate.from_dict(item) for item in body.get("templates", [])]

    def get_template(self, event_id: int, template_id: int) -> BadgeTemplate:
        return BadgeTemplate.from_dict(
            self._json("GET", f"events/{event_id}/badge-templates/{template_id}")
        )

    def create_template(self, event_id: int, payload: dict[str, Any]) -> BadgeTemplate:
        created = BadgeTemplate.from_dict(
            self._json("POST", f"events/{event_id}/badge-templates", payload=payload)
        )
        logger.info("Created badge template %s for event %s", created.id, event_id)
        return created

    def update_template(
        self, event_id: int, template_id: int, payload: dict[str, Any]
    ) -> BadgeTemplate:
        updated = BadgeTemplate.from_dict(
            self._json("PUT", f"events/{event_id}/badge-templates/{template_id}", payload=payload)
        )
        logger.info("Updated badge template %s for event %s", template_id, event_id)
        return updated

    def delete_template(self, event_id: int, template_id: int) -> None:
        self._request("DELETE", f"events/{event_id}/badge-templates/{template_id}")
        logger.info("Deleted badge template %s for event %s", template_id, event_id)

    def duplicate_template(self, template: BadgeTemplate) -> BadgeTemplate:
        if template.event_id is None:
            raise BadgeApiError("Template is not linked to an event.")
        payload = template.to_payload()
        payload["name"] = f"{template.name}{COPY_SUFFIX}"
        return self.create_template(template.event_id, payload)

    def export_template(self, event_id: int, template_id: int) -> tuple[bytes, str | None]:
        response = self._request(
            "POST", f"events/{event_id}/badge-templates/{template_id}/export"
        )
        return response.body, response.filename

    def import_template(
        self, event_id: int, document: Any, name_override: str = ""
    ) -> BadgeTemplate:
        payload: dict[str, Any] = {"event_id": event_id, "template_data": document}
        if name_override:
            payload["name_override"] = name_override
        created = BadgeTemplate.from_dict(
            self._json("POST", f"events/{event_id}/badge-templates/import", payload=payload)
        )
        logger.info("Imported badge template %s for event %s", created.id, event_id)
        return created

    # Render backend

    def generate_badges(self, event_id: int, request: GenerationRequest) -> ApiResponse:
        logger.info(
            "Generating badges for event %s with template %s (%s participants)",
            event_id,
            request.template_id,
            len(request.participant_ids),
        )
        return self._request(
            "POST",
            f"events/{event_id}/badges/generate",
            payload=request.to_dict(),
            accept="application/pdf, application/zip, application/json",
        )

    def preview_badge(
        self,
        event_id: int,
        template_id: int,
        *,
        participant_id: int | None = None,
        side: str = "front",
    ) -> bytes:
        payload: dict[str, Any] = {"template_id": template_id, "side": side}
        if participant_id is not None:
            payload["participant_id"] = participant_id
        response = self._request(
            "POST",
            f"events/{event_id}/badges/preview",
            payload=payload,
            accept="application/pdf, application/json",
        )
        return response.body

    # Event directory

    def get_event(self, event_id: int) -> dict[str, Any]:
        return self._json("GET", f"events/{event_id}/")

    def list_event_enrollments(self, event_id: int) -> list[dict[str, Any]]:
        body = self._json("GET", f"enrollments/by-event/{event_id}") or {}
        return list(body.get("items", []))

    def list_field_tokens(self) -> list[dict[str, str]]:
        return list(self._json("GET", "badges/field-tokens") or [])
