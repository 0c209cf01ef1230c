from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from bulletin_board.chat.exceptions import PersistenceError
from bulletin_board.chat.store import MessageStore

from .serializers import ChatHistoryQuerySerializer
from .serializers import ChatMessageSerializer


class ChatHistoryView(APIView):
    """Conversation between the caller and ``other_user_id``, oldest first.

    Same result as the socket ``fetch_messages`` event. Not paginated.
    """

    permission_classes = [IsAuthenticated]
    store_class = MessageStore

    @extend_schema(
        tags=["Chat"],
        parameters=[
            OpenApiParameter("other_user_id", int, required=True),
        ],
        responses=ChatMessageSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        query = ChatHistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        other_user_id = query.validated_data["other_user_id"]

        try:
            messages = self.store_class().history(request.user.id, other_user_id)
        except PersistenceError as exc:
            return Response(
                exc.as_payload(),
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response(ChatMessageSerializer(messages, many=True).data)
