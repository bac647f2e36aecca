from django.contrib import admin

from .models import RenewalHistory


@admin.register(RenewalHistory)
class RenewalHistoryAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "gym",
        "executed_at",
        "execution_type",
        "processed_memberships",
        "successful_renewals",
        "failed_renewals",
        "price_updates",
        "total_amount",
    )
    list_filter = ("gym", "execution_type")
    ordering = ("-executed_at",)
    readonly_fields = [f.name for f in RenewalHistory._meta.fields]

    # История только дописывается движком продлений
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
