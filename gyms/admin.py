from django.contrib import admin, messages

from payments.services import generate_monthly_payments
from renewals.models import RenewalHistory
from renewals.services import process_all_auto_renewals

from .models import Gym


@admin.register(Gym)
class GymAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "timezone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    ordering = ("name",)
    actions = ("run_auto_renewals", "run_monthly_generation")

    @admin.action(description="Запустить автопродление абонементов")
    def run_auto_renewals(self, request, queryset):
        for gym in queryset:
            result = process_all_auto_renewals(gym, execution_type=RenewalHistory.ExecutionType.MANUAL)
            level = messages.SUCCESS if result["success"] else messages.WARNING
            self.message_user(
                request,
                f"{gym}: продлено {result['renewed_count']}, сумма {result['total_amount']}, "
                f"новых цен {result['price_update_count']}, ошибок {len(result['errors'])}",
                level=level,
            )

    @admin.action(description="Выставить ежемесячные платежи")
    def run_monthly_generation(self, request, queryset):
        for gym in queryset:
            result = generate_monthly_payments(gym)
            level = messages.SUCCESS if result["success"] else messages.WARNING
            self.message_user(
                request,
                f"{gym}: выставлено {result['generated_count']} на {result['total_amount']}, "
                f"ошибок {len(result['errors'])}",
                level=level,
            )
