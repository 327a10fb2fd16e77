from io import BytesIO, StringIO
import json
from pathlib import Path
import tempfile
import zipfile
from unittest.mock import patch

from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User
from events.models import Enrollment, Event, EventSpeaker, Participant, Tenant

from .models import BadgeTemplate, BadgeTemplateHistoryEvent


def _front_config(**overrides) -> dict:
    config = {
        "width": 105,
        "height": 74,
        "unit": "mm",
        "background_color": "#FFFFFF",
        "elements": [
            {
                "id": "element-name",
                "type": "field",
                "x": 10,
                "y": 10,
                "width": 80,
                "height": 20,
                "content": "{nome}",
                "style": {
                    "fontSize": 14,
                    "fontFamily": "Arial",
                    "color": "#000000",
                    "fontWeight": "normal",
                    "textAlign": "center",
                },
                "z_index": 0,
            }
        ],
    }
    config.update(overrides)
    return config


def _back_config() -> dict:
    return {
        "width": 105,
        "height": 74,
        "unit": "mm",
        "background_color": "#EEEEEE",
        "elements": [
            {
                "id": "element-qr",
                "type": "qrcode",
                "x": 37,
                "y": 20,
                "width": 30,
                "height": 30,
                "content": "",
                "z_index": 0,
            }
        ],
    }


def _template_payload(**overrides) -> dict:
    payload = {
        "name": "Congress badge",
        "description": "Main badge",
        "participant_type": "all",
        "is_double_sided": False,
        "front_config": _front_config(),
        "badges_per_page": 8,
        "page_orientation": "portrait",
    }
    payload.update(overrides)
    return payload


class FakeHTML:
    rendered_html: list[str] = []

    def __init__(self, string: str, base_url=None):
        self.string = string
        FakeHTML.rendered_html.append(string)

    def write_pdf(self) -> bytes:
        return b"%PDF-1.7 fake badge"


class BadgeApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.tenant = Tenant.objects.create(name="Provider", slug="provider")
        self.other_tenant = Tenant.objects.create(name="Other", slug="other")
        self.staff = User.objects.create_user(
            username="staff",
            password="pass12345",
            tenant=self.tenant,
            role=User.Roles.STAFF,
        )
        self.viewer = User.objects.create_user(
            username="viewer",
            password="pass12345",
            tenant=self.tenant,
            role=User.Roles.VIEWER,
        )
        self.event = Event.objects.create(
            tenant=self.tenant,
            title="Cardiology Update",
            venue="Milano",
            delivery_mode=Event.DeliveryMode.RESIDENTIAL,
        )
        self.remote_event = Event.objects.create(
            tenant=self.tenant,
            title="Webinar",
            delivery_mode=Event.DeliveryMode.WEBINAR,
        )
        self.foreign_event = Event.objects.create(tenant=self.other_tenant, title="Foreign")
        self.base_url = f"/api/events/{self.event.id}/badge-templates"

    def _create_template(self, **overrides) -> BadgeTemplate:
        payload = _template_payload(**overrides)
        return BadgeTemplate.objects.create(
            tenant=self.tenant,
            event=self.event,
            created_by=self.staff,
            **payload,
        )


class BadgeTemplateApiTests(BadgeApiTestCase):
    def test_create_and_reload_template(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.base_url, _template_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        template_id = response.data["id"]
        self.assertEqual(response.data["event_id"], self.event.id)
        self.assertEqual(response.data["tenant_id"], self.tenant.id)

        reloaded = self.client.get(f"{self.base_url}/{template_id}")
        self.assertEqual(reloaded.status_code, status.HTTP_200_OK)
        element = reloaded.data["front_config"]["elements"][0]
        self.assertEqual(element["content"], "{nome}")
        self.assertEqual(
            (element["x"], element["y"], element["width"], element["height"]),
            (10, 10, 80, 20),
        )
        self.assertTrue(
            BadgeTemplateHistoryEvent.objects.filter(
                template_id=template_id,
                event_type=BadgeTemplateHistoryEvent.EventType.CREATED,
                actor=self.staff,
            ).exists()
        )

    def test_list_returns_total_and_templates(self):
        self._create_template(name="B")
        self._create_template(name="A")
        self.client.force_authenticate(user=self.viewer)
        response = self.client.get(self.base_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total"], 2)
        self.assertEqual([row["name"] for row in response.data["templates"]], ["A", "B"])

    def test_single_sided_save_drops_back_config(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            self.base_url,
            _template_payload(is_double_sided=False, back_config=_back_config()),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data["back_config"])
        template = BadgeTemplate.objects.get(pk=response.data["id"])
        self.assertIsNone(template.back_config)

    def test_toggling_double_sided_off_clears_back_config(self):
        template = self._create_template(is_double_sided=True, back_config=_back_config())
        self.client.force_authenticate(user=self.staff)
        response = self.client.put(
            f"{self.base_url}/{template.id}",
            _template_payload(is_double_sided=False, back_config=_back_config()),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        template.refresh_from_db()
        self.assertFalse(template.is_double_sided)
        self.assertIsNone(template.back_config)

    def test_double_sided_requires_back_config(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            self.base_url,
            _template_payload(is_double_sided=True),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("back_config", response.data)

    def test_double_sided_replacement_must_resend_back_config(self):
        template = self._create_template(is_double_sided=True, back_config=_back_config())
        self.client.force_authenticate(user=self.staff)
        response = self.client.put(
            f"{self.base_url}/{template.id}",
            _template_payload(is_double_sided=True, name="Renamed"),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("back_config", response.data)
        template.refresh_from_db()
        self.assertEqual(template.name, "Congress badge")

    def test_invalid_config_is_rejected_with_field_path(self):
        config = _front_config()
        config["elements"].append(dict(config["elements"][0]))
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.base_url, _template_payload(front_config=config), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("front_config.elements[1].id", response.data)

    def test_out_of_bounds_elements_are_accepted_by_default(self):
        config = _front_config()
        config["elements"][0]["x"] = 100
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.base_url, _template_payload(front_config=config), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    @override_settings(BADGE_ENFORCE_PRINTABLE_AREA=True)
    def test_out_of_bounds_elements_are_rejected_when_enforced(self):
        config = _front_config()
        config["elements"][0]["x"] = 100
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.base_url, _template_payload(front_config=config), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data["front_config.elements[0]"],
            ["Element exceeds card bounds."],
        )

    def test_update_is_full_replacement_and_patch_is_not_allowed(self):
        template = self._create_template()
        self.client.force_authenticate(user=self.staff)
        patch_response = self.client.patch(
            f"{self.base_url}/{template.id}", {"name": "Renamed"}, format="json"
        )
        self.assertEqual(patch_response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

        put_response = self.client.put(
            f"{self.base_url}/{template.id}",
            _template_payload(name="Renamed", badges_per_page=4),
            format="json",
        )
        self.assertEqual(put_response.status_code, status.HTTP_200_OK)
        self.assertEqual(put_response.data["name"], "Renamed")
        self.assertEqual(put_response.data["badges_per_page"], 4)
        history = BadgeTemplateHistoryEvent.objects.get(
            template=template, event_type=BadgeTemplateHistoryEvent.EventType.UPDATED
        )
        self.assertEqual(history.metadata["name_before"], "Congress badge")

    def test_delete_keeps_history(self):
        template = self._create_template()
        self.client.force_authenticate(user=self.staff)
        response = self.client.delete(f"{self.base_url}/{template.id}")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(BadgeTemplate.objects.filter(pk=template.id).exists())
        deleted = BadgeTemplateHistoryEvent.objects.get(
            event_type=BadgeTemplateHistoryEvent.EventType.DELETED
        )
        self.assertEqual(deleted.template_name_snapshot, "Congress badge")
        self.assertEqual(deleted.metadata["template_id"], template.id)

    def test_viewer_cannot_write(self):
        template = self._create_template()
        self.client.force_authenticate(user=self.viewer)
        create_response = self.client.post(self.base_url, _template_payload(), format="json")
        delete_response = self.client.delete(f"{self.base_url}/{template.id}")
        self.assertEqual(create_response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(delete_response.status_code, status.HTTP_403_FORBIDDEN)

    def test_remote_event_rejects_badge_endpoints(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.get(f"/api/events/{self.remote_event.id}/badge-templates")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("delivery mode", response.data["detail"])

    def test_foreign_tenant_event_is_not_found(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.get(f"/api/events/{self.foreign_event.id}/badge-templates")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_field_token_registry_endpoint(self):
        self.client.force_authenticate(user=self.viewer)
        response = self.client.get("/api/badges/field-tokens")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0], {"token": "{nome}", "label": "Nome"})
        self.assertIn({"token": "{qr_code}", "label": "QR Code"}, response.data)


class BadgeTemplateDocumentApiTests(BadgeApiTestCase):
    def test_export_returns_named_json_document(self):
        template = self._create_template(
            name="Main Badge", is_double_sided=True, back_config=_back_config()
        )
        self.client.force_authenticate(user=self.viewer)
        response = self.client.post(f"{self.base_url}/{template.id}/export")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertIn('filename="badge_template_Main_Badge.json"', response["Content-Disposition"])
        document = json.loads(response.content)
        self.assertEqual(document["format"], "badge-template")
        self.assertEqual(document["version"], 1)
        self.assertEqual(document["template"]["back_config"], _back_config())
        self.assertNotIn("id", document["template"])

    def test_import_export_document_with_name_override(self):
        template = self._create_template(is_double_sided=True, back_config=_back_config())
        self.client.force_authenticate(user=self.staff)
        export_response = self.client.post(f"{self.base_url}/{template.id}/export")
        document = json.loads(export_response.content)

        response = self.client.post(
            f"{self.base_url}/import",
            {"event_id": self.event.id, "template_data": document, "name_override": "A copy"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotEqual(response.data["id"], template.id)
        self.assertEqual(response.data["name"], "A copy")
        self.assertEqual(response.data["front_config"], template.front_config)
        self.assertEqual(response.data["back_config"], template.back_config)
        self.assertTrue(
            BadgeTemplateHistoryEvent.objects.filter(
                template_id=response.data["id"],
                event_type=BadgeTemplateHistoryEvent.EventType.IMPORTED,
            ).exists()
        )

    def test_import_accepts_bare_template_and_falls_back_to_document_name(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            f"{self.base_url}/import",
            {"template_data": _template_payload(name="Bare")},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["name"], "Bare")

    def test_import_rejects_malformed_documents(self):
        self.client.force_authenticate(user=self.staff)
        bad_documents = [
            {"hello": "world"},
            {"format": "badge-template", "version": 1, "template": "nope"},
            {"format": "other", "template": _template_payload()},
            {"template": _template_payload(front_config={"width": 10})},
        ]
        for document in bad_documents:
            with self.subTest(document=document):
                response = self.client.post(
                    f"{self.base_url}/import",
                    {"template_data": document},
                    format="json",
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(BadgeTemplate.objects.exists())

    def test_import_rejects_mismatched_event_id(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            f"{self.base_url}/import",
            {"event_id": self.remote_event.id, "template_data": _template_payload()},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("event_id", response.data)


@patch("badges.rendering.HTML", FakeHTML)
class BadgeGenerationApiTests(BadgeApiTestCase):
    def setUp(self):
        super().setUp()
        FakeHTML.rendered_html = []
        self.template = self._create_template(
            name="Main Badge", is_double_sided=True, back_config=_back_config()
        )
        self.mario = Participant.objects.create(
            tenant=self.tenant, first_name="Mario", last_name="Rossi", title="Dr."
        )
        self.anna = Participant.objects.create(
            tenant=self.tenant, first_name="Anna", last_name="Bianchi"
        )
        self.speaker = Participant.objects.create(
            tenant=self.tenant, first_name="Luca", last_name="Verdi"
        )
        self.outsider = Participant.objects.create(
            tenant=self.tenant, first_name="Out", last_name="Sider"
        )
        Enrollment.objects.create(
            event=self.event, participant=self.mario, status=Enrollment.Status.CONFIRMED
        )
        Enrollment.objects.create(event=self.event, participant=self.anna)
        EventSpeaker.objects.create(event=self.event, participant=self.speaker)
        self.generate_url = f"/api/events/{self.event.id}/badges/generate"
        self.preview_url = f"/api/events/{self.event.id}/badges/preview"

    def _generation_request(self, **overrides) -> dict:
        payload = {
            "template_id": self.template.id,
            "participant_ids": [self.mario.id, self.anna.id],
            "include_speakers": False,
            "format": "pdf",
            "double_sided": True,
        }
        payload.update(overrides)
        return payload

    def test_generate_pdf_returns_named_attachment(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.generate_url, self._generation_request(), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertIn('filename="badges_Main_Badge.pdf"', response["Content-Disposition"])
        self.assertTrue(response.content.startswith(b"%PDF"))
        html = FakeHTML.rendered_html[-1]
        self.assertIn("Mario", html)
        self.assertIn("Anna", html)
        self.assertNotIn("Luca", html)
        self.assertEqual(html.count('class="badge-page"'), 2)
        history = BadgeTemplateHistoryEvent.objects.get(
            event_type=BadgeTemplateHistoryEvent.EventType.GENERATED
        )
        self.assertEqual(history.metadata, {"participant_count": 2, "format": "pdf"})

    def test_include_speakers_appends_event_speakers(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            self.generate_url,
            self._generation_request(participant_ids=[self.mario.id], include_speakers=True),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("Luca", FakeHTML.rendered_html[-1])

    def test_generate_zip_contains_one_pdf_per_person(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            self.generate_url, self._generation_request(format="zip"), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/zip")
        self.assertIn('filename="badges_Main_Badge.zip"', response["Content-Disposition"])
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            self.assertEqual(archive.namelist(), ["001_Rossi_Mario.pdf", "002_Bianchi_Anna.pdf"])

    def test_generate_rejects_participants_outside_the_event(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            self.generate_url,
            self._generation_request(participant_ids=[self.outsider.id]),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("participant_ids", response.data)

    def test_generate_without_audience_is_rejected(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(
            self.generate_url,
            self._generation_request(participant_ids=[]),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(BADGE_GENERATION_ENABLED=False)
    def test_disabled_generation_answers_not_implemented(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post(self.generate_url, self._generation_request(), format="json")
        self.assertEqual(response.status_code, status.HTTP_501_NOT_IMPLEMENTED)

    def test_missing_renderer_answers_not_implemented(self):
        self.client.force_authenticate(user=self.staff)
        with patch("badges.rendering.HTML", None):
            response = self.client.post(
                self.generate_url, self._generation_request(), format="json"
            )
        self.assertEqual(response.status_code, status.HTTP_501_NOT_IMPLEMENTED)
        self.assertEqual(response.data["detail"], "PDF rendering backend is unavailable.")

    def test_preview_uses_sample_values_without_participant(self):
        self.client.force_authenticate(user=self.viewer)
        response = self.client.post(
            self.preview_url, {"template_id": self.template.id}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertIn("Mario", FakeHTML.rendered_html[-1])

    def test_preview_renders_speaker_back_side(self):
        self.client.force_authenticate(user=self.viewer)
        response = self.client.post(
            self.preview_url,
            {"template_id": self.template.id, "participant_id": self.speaker.id, "side": "back"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("data:image/png;base64,", FakeHTML.rendered_html[-1])

    def test_preview_rejects_back_side_of_single_sided_template(self):
        single = self._create_template(name="Single")
        self.client.force_authenticate(user=self.viewer)
        response = self.client.post(
            self.preview_url,
            {"template_id": single.id, "side": "back"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("side", response.data)

    def test_preview_rejects_unlinked_participant(self):
        self.client.force_authenticate(user=self.viewer)
        response = self.client.post(
            self.preview_url,
            {"template_id": self.template.id, "participant_id": self.outsider.id},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ImportBadgeTemplateCommandTests(BadgeApiTestCase):
    def _write_document(self, directory: str, document: dict) -> str:
        path = Path(directory) / "badge.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return str(path)

    def test_command_creates_template_from_export_document(self):
        document = {"format": "badge-template", "version": 1, "template": _template_payload()}
        with tempfile.TemporaryDirectory() as directory:
            path = self._write_document(directory, document)
            out = StringIO()
            call_command("import_badge_template", str(self.event.id), path, "--name", "From file", stdout=out)

        template = BadgeTemplate.objects.get(event=self.event)
        self.assertEqual(template.name, "From file")
        self.assertEqual(template.tenant, self.tenant)
        self.assertIn("Imported badge template 'From file'", out.getvalue())
        self.assertTrue(
            BadgeTemplateHistoryEvent.objects.filter(
                template=template,
                event_type=BadgeTemplateHistoryEvent.EventType.IMPORTED,
            ).exists()
        )

    def test_dry_run_creates_nothing(self):
        with tempfile.TemporaryDirectory() as directory:
            path = self._write_document(directory, _template_payload())
            call_command("import_badge_template", str(self.event.id), path, "--dry-run", stdout=StringIO())
        self.assertFalse(BadgeTemplate.objects.exists())

    def test_remote_event_and_invalid_document_fail(self):
        with tempfile.TemporaryDirectory() as directory:
            path = self._write_document(directory, _template_payload())
            with self.assertRaises(CommandError):
                call_command("import_badge_template", str(self.remote_event.id), path)

            broken = self._write_document(directory, {"template": {"name": "No sides"}})
            with self.assertRaises(CommandError):
                call_command("import_badge_template", str(self.event.id), broken)
        self.assertFalse(BadgeTemplate.objects.exists())
