from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework.generics import CreateAPIView
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import AllowAny
from rest_framework.viewsets import GenericViewSet

from bulletin_board.users.models import User

from .serializers import UserRegistrationSerializer
from .serializers import UserSerializer


@extend_schema_view(list=extend_schema(tags=["Users"]))
class UserViewSet(ListModelMixin, GenericViewSet):
    """All users, for the chat peer list.

    Readable without authentication, matching the browser client which loads
    the list before opening its socket.
    """

    serializer_class = UserSerializer
    queryset = User.objects.order_by("id")
    permission_classes = [AllowAny]
    # Plain list (no pagination) for /api/v1/users/
    pagination_class = None


@extend_schema(tags=["Authentication"])
class RegisterView(CreateAPIView):
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]
    authentication_classes = []
