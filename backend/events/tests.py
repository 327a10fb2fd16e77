from datetime import date

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import User

from .models import Enrollment, Event, Participant, Tenant


class EventModelTests(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Provider", slug="provider")

    def test_badges_available_only_for_on_site_modes(self):
        expectations = {
            Event.DeliveryMode.RESIDENTIAL: True,
            Event.DeliveryMode.HYBRID: True,
            Event.DeliveryMode.FAD: False,
            Event.DeliveryMode.WEBINAR: False,
        }
        for mode, expected in expectations.items():
            with self.subTest(mode=mode):
                event = Event(tenant=self.tenant, title="Course", delivery_mode=mode)
                self.assertEqual(event.badges_available, expected)

    def test_date_label_spans_multi_day_events(self):
        event = Event(
            tenant=self.tenant,
            title="Congress",
            start_date=date(2026, 5, 4),
            end_date=date(2026, 5, 6),
        )
        self.assertEqual(event.date_label, "2026-05-04 - 2026-05-06")
        event.end_date = event.start_date
        self.assertEqual(event.date_label, "2026-05-04")


class EventApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.tenant = Tenant.objects.create(name="Provider", slug="provider")
        self.other_tenant = Tenant.objects.create(name="Other", slug="other")
        self.user = User.objects.create_user(
            username="viewer",
            password="pass12345",
            tenant=self.tenant,
        )
        self.event = Event.objects.create(tenant=self.tenant, title="Cardiology Update")
        self.foreign_event = Event.objects.create(tenant=self.other_tenant, title="Foreign")
        self.participant = Participant.objects.create(
            tenant=self.tenant,
            first_name="Mario",
            last_name="Rossi",
            title="Dr.",
            email="mario@example.com",
        )
        self.enrollment = Enrollment.objects.create(
            event=self.event,
            participant=self.participant,
            status=Enrollment.Status.CONFIRMED,
        )

    def test_event_list_is_tenant_scoped(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get("/api/events/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [self.event.id])
        self.assertTrue(response.data[0]["badges_available"])

    def test_event_list_filters_by_delivery_mode(self):
        Event.objects.create(
            tenant=self.tenant,
            title="Webinar",
            delivery_mode=Event.DeliveryMode.WEBINAR,
        )
        self.client.force_authenticate(user=self.user)
        response = self.client.get("/api/events/", {"delivery_mode": "WEBINAR"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["title"] for row in response.data], ["Webinar"])
        self.assertFalse(response.data[0]["badges_available"])

    def test_enrollments_by_event_embeds_participant(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(f"/api/enrollments/by-event/{self.event.id}")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total"], 1)
        item = response.data["items"][0]
        self.assertEqual(item["status"], "confirmed")
        self.assertEqual(item["participant"]["last_name"], "Rossi")
        self.assertEqual(item["participant"]["title"], "Dr.")

    def test_foreign_event_enrollments_are_not_found(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(f"/api/enrollments/by-event/{self.foreign_event.id}")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_anonymous_user_is_rejected(self):
        response = self.client.get("/api/events/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
