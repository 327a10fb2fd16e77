import logging

from drf_spectacular.utils import extend_schema
from rest_framework import permissions, response, status, views
from rest_framework.authtoken.models import Token

from .serializers import (
    EmptySerializer,
    LoginResponseSerializer,
    LoginSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


@extend_schema(
    request=LoginSerializer,
    responses=LoginResponseSerializer,
)
class LoginView(views.APIView):
    """Exchange credentials for the API token the badge console sends on every call."""

    permission_classes = [permissions.AllowAny]
    serializer_class = LoginSerializer

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        token, created = Token.objects.get_or_create(user=user)
        logger.info("Issued API token for user %s (new=%s)", user.pk, created)
        return response.Response({"token": token.key, "user": UserSerializer(user).data})


@extend_schema(
    request=EmptySerializer,
    responses={status.HTTP_204_NO_CONTENT: None},
)
class LogoutView(views.APIView):
    serializer_class = EmptySerializer

    def post(self, request):
        deleted, _ = Token.objects.filter(user=request.user).delete()
        logger.info("Revoked %s API token(s) for user %s", deleted, request.user.pk)
        return response.Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(responses=UserSerializer)
class MeView(views.APIView):
    serializer_class = EmptySerializer

    def get(self, request):
        return response.Response(UserSerializer(request.user).data)
