from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from .models import MonthlyPayment
from .services import register_payment


@admin.register(MonthlyPayment)
class MonthlyPaymentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "member_name",
        "activity_name",
        "billing_month",
        "billing_year",
        "amount",
        "status",
        "overdue_flag",
        "due_date",
        "renewal_payment",
        "price_updated",
        "paid_at",
    )
    list_filter = ("gym", "status", "renewal_payment", "auto_generated", "billing_year", "billing_month")
    search_fields = ("member_name", "activity_name", "member__phone")
    ordering = ("-due_date", "-id")
    readonly_fields = ("created_at", "paid_at", "previous_price", "price_updated", "renewal_payment", "auto_generated")
    list_select_related = ("gym",)
    actions = ("register_cash_payment",)

    @admin.display(boolean=True, description="Просрочен")
    def overdue_flag(self, obj):
        return obj.is_overdue(obj.gym.localdate())

    @admin.action(description="Отметить оплату наличными")
    def register_cash_payment(self, request, queryset):
        done = 0
        for payment in queryset:
            try:
                register_payment(payment, method=MonthlyPayment.Method.CASH)
            except ValidationError as exc:
                self.message_user(request, f"{payment}: {'; '.join(exc.messages)}", level=messages.WARNING)
                continue
            done += 1
        self.message_user(request, f"Оплачено: {done}", level=messages.SUCCESS)
