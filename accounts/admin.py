from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class GymUserAdmin(UserAdmin):
    list_display = ("id", "username", "full_name", "phone", "gym", "is_staff", "is_active")
    list_filter = ("gym", "is_staff", "is_superuser", "is_active")
    search_fields = ("username", "full_name", "phone", "email")
    fieldsets = UserAdmin.fieldsets + (
        ("Зал", {"fields": ("full_name", "phone", "gym")}),
    )
