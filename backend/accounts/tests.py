from django.test import TestCase
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from events.models import Tenant

from .models import User


class UserModelTests(TestCase):
    def test_default_role_is_viewer(self):
        user = User.objects.create_user(username="testuser", password="pass12345")
        self.assertEqual(user.role, User.Roles.VIEWER)
        self.assertFalse(user.can_edit_badges)

    def test_staff_and_admin_can_edit_badges(self):
        for role in [User.Roles.ADMIN, User.Roles.STAFF]:
            with self.subTest(role=role):
                user = User(username=f"user-{role}", role=role)
                self.assertTrue(user.can_edit_badges)


class AuthApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.tenant = Tenant.objects.create(name="Provider", slug="provider")
        self.user = User.objects.create_user(
            username="operator",
            email="operator@example.com",
            password="pass12345",
            tenant=self.tenant,
            role=User.Roles.STAFF,
        )

    def test_login_returns_token(self):
        response = self.client.post(
            "/api/auth/login/",
            {"username": "operator", "password": "pass12345"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("token", response.data)
        self.assertEqual(response.data["user"]["role"], "staff")
        self.assertTrue(Token.objects.filter(user=self.user, key=response.data["token"]).exists())

    def test_login_rejects_bad_password(self):
        response = self.client.post(
            "/api/auth/login/",
            {"username": "operator", "password": "wrong"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_rejects_user_without_tenant(self):
        User.objects.create_user(username="loose", password="pass12345")
        response = self.client.post(
            "/api/auth/login/",
            {"username": "loose", "password": "pass12345"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_token_authenticates_me_endpoint(self):
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["username"], "operator")
        self.assertEqual(response.data["tenant"], self.tenant.id)
        self.assertEqual(response.data["tenant_name"], self.tenant.name)
        self.assertTrue(response.data["can_edit_badges"])

    def test_logout_deletes_token(self):
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
        response = self.client.post("/api/auth/logout/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Token.objects.filter(user=self.user).exists())

    def test_me_requires_authentication(self):
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
