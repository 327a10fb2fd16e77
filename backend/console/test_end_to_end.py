from io import BytesIO
from unittest.mock import patch
from urllib.error import HTTPError
from urllib.parse import urlparse

from django.test import TestCase, override_settings
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from accounts.models import User
from events.models import Enrollment, Event, Participant, Tenant

from .client import ApiCredentials, BadgeApiClient
from .errors import GenerationUnavailableError
from .gallery import TemplateGallery


class _LoopbackResponse:
    def __init__(self, response):
        self.status = response.status_code
        self.headers = response.headers
        self._body = response.content

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


def _loopback_urlopen(request, timeout=None):
    """Serve a console request from the Django test client instead of the network."""
    api_client = APIClient()
    headers = {"HTTP_ACCEPT": request.get_header("Accept", "application/json")}
    authorization = request.get_header("Authorization")
    if authorization:
        headers["HTTP_AUTHORIZATION"] = authorization
    response = api_client.generic(
        request.get_method(),
        urlparse(request.full_url).path,
        data=request.data or b"",
        content_type=request.get_header("Content-type", "application/json"),
        **headers,
    )
    if response.status_code >= 400:
        raise HTTPError(
            request.full_url,
            response.status_code,
            response.reason_phrase,
            None,
            BytesIO(response.content),
        )
    return _LoopbackResponse(response)


class ConsoleEndToEndTests(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Provider", slug="provider")
        self.staff = User.objects.create_user(
            username="staff",
            password="pass12345",
            tenant=self.tenant,
            role=User.Roles.STAFF,
        )
        token = Token.objects.create(user=self.staff)
        self.event = Event.objects.create(
            tenant=self.tenant,
            title="Cardiology Update",
            delivery_mode=Event.DeliveryMode.RESIDENTIAL,
        )
        self.remote_event = Event.objects.create(
            tenant=self.tenant,
            title="Webinar",
            delivery_mode=Event.DeliveryMode.FAD,
        )
        participant = Participant.objects.create(tenant=self.tenant, first_name="Mario", last_name="Rossi")
        Enrollment.objects.create(
            event=self.event,
            participant=participant,
            status=Enrollment.Status.CONFIRMED,
        )
        self.api = BadgeApiClient(ApiCredentials("http://testserver/api", token=token.key))
        patcher = patch("console.client.urlopen", side_effect=_loopback_urlopen)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _gallery(self, **kwargs) -> TemplateGallery:
        event = self.api.get_event(self.event.id)
        return TemplateGallery.for_event(self.api, event, confirm=lambda message: True, **kwargs)

    def test_created_field_element_survives_reload(self):
        gallery = self._gallery()
        editor = gallery.open_editor()
        element = editor.add_element("field")

        saved = editor.save()

        self.assertEqual([template.name for template in gallery.templates], ["Nuovo Template"])
        reloaded = self.api.get_template(self.event.id, saved.id)
        stored = reloaded.front_config.find(element.id)
        self.assertEqual(stored.content, "{nome}")
        self.assertEqual((stored.x, stored.y, stored.width, stored.height), (10, 10, 80, 20))
        self.assertIsNone(reloaded.back_config)

    def test_exported_document_imports_under_a_new_name(self):
        gallery = self._gallery(prompt=lambda message, default: "A copy")
        editor = gallery.open_editor()
        editor.name = "Congress badge"
        editor.set_double_sided(True)
        editor.switch_side("back")
        editor.add_element("qrcode")
        source = editor.save()

        content, filename = self.api.export_template(self.event.id, source.id)
        self.assertEqual(filename, "badge_template_Congress_badge.json")
        imported = gallery.import_document(content)

        self.assertEqual(imported.name, "A copy")
        self.assertNotEqual(imported.id, source.id)
        self.assertEqual(imported.front_config.to_dict(), source.front_config.to_dict())
        self.assertEqual(imported.back_config.to_dict(), source.back_config.to_dict())
        self.assertEqual(sorted(template.name for template in gallery.templates), ["A copy", "Congress badge"])

    def test_remote_event_has_no_gallery(self):
        event = self.api.get_event(self.remote_event.id)
        self.assertFalse(event["badges_available"])
        self.assertIsNone(TemplateGallery.for_event(self.api, event))

    @override_settings(BADGE_GENERATION_ENABLED=False)
    def test_disabled_generation_reports_coming_soon(self):
        gallery = self._gallery()
        editor = gallery.open_editor()
        editor.add_element("field")
        template = editor.save()

        generator = gallery.open_generator(template)
        generator.select_confirmed()

        with self.assertRaises(GenerationUnavailableError):
            generator.generate()
