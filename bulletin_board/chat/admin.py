from django.contrib import admin

from bulletin_board.chat import models


@admin.register(models.ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "receiver", "message", "created_at"]
    search_fields = ["message", "sender__username", "receiver__username"]
    list_filter = ["created_at"]
    list_select_related = ["sender", "receiver"]

    # Messages are append-only.
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
