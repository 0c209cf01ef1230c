from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from bulletin_board.users.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ["id", "username", "is_active", "is_superuser", "created_at"]
    search_fields = ["username", "email"]
    list_filter = ["is_active", "is_staff", "created_at"]
