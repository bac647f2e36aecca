from django.contrib import admin

from .models import Activity, MembershipPlan


class MembershipPlanInline(admin.TabularInline):
    model = MembershipPlan
    extra = 0
    fields = ("name", "cost", "max_attendances", "is_active")


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "gym", "price", "cost", "monthly_price", "is_active")
    list_filter = ("gym", "is_active")
    search_fields = ("name",)
    ordering = ("name",)
    inlines = (MembershipPlanInline,)


@admin.register(MembershipPlan)
class MembershipPlanAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "activity", "gym", "cost", "max_attendances", "is_active")
    list_filter = ("gym", "is_active")
    search_fields = ("name", "activity__name")
    ordering = ("activity__name", "id")
