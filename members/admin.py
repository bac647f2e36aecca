from django.contrib import admin

from memberships.admin import MembershipInline

from .models import Member


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ("id", "last_name", "first_name", "phone", "gym", "status", "created_at")
    list_filter = ("gym", "status")
    search_fields = ("first_name", "last_name", "phone", "email")
    ordering = ("last_name", "first_name")
    inlines = (MembershipInline,)
