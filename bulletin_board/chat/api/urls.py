from django.urls import path

from .views import ChatHistoryView

urlpatterns = [
    path("messages/", ChatHistoryView.as_view(), name="chat-history"),
]
