from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from renewals.services import renew_selected_memberships

from .models import Membership
from .services import cancel_membership, pause_membership, resume_membership


class MembershipInline(admin.TabularInline):
    model = Membership
    extra = 0
    fields = ("activity", "activity_name", "cost", "status", "auto_renewal", "start_date", "end_date", "current_attendances")
    readonly_fields = ("activity_name", "current_attendances")
    show_change_link = True


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "member",
        "activity_name",
        "cost",
        "status",
        "auto_renewal",
        "start_date",
        "end_date",
        "current_attendances",
        "max_attendances",
        "renewed_automatically",
    )
    list_filter = ("status", "auto_renewal", "member__gym")
    search_fields = ("member__first_name", "member__last_name", "member__phone", "activity_name")
    ordering = ("end_date", "id")
    readonly_fields = ("renewal_date", "version", "paused_at", "cancelled_at", "created_at", "updated_at")
    actions = ("renew_selected", "pause_selected", "resume_selected", "cancel_selected")

    @admin.action(description="Продлить выбранные абонементы")
    def renew_selected(self, request, queryset):
        by_gym = {}
        for m in queryset.select_related("member", "member__gym", "activity"):
            by_gym.setdefault(m.member.gym, []).append(m)

        for gym, memberships in by_gym.items():
            result = renew_selected_memberships(gym, memberships)
            self.message_user(
                request,
                f"{gym}: продлено {result['renewed_count']} из {len(memberships)}",
                level=messages.SUCCESS if result["success"] else messages.WARNING,
            )
            for error in result["errors"]:
                self.message_user(request, error, level=messages.ERROR)

    def _apply(self, request, queryset, func, done: str):
        count = 0
        for m in queryset.select_related("member"):
            try:
                func(m)
            except ValidationError as exc:
                self.message_user(request, f"{m}: {'; '.join(exc.messages)}", level=messages.WARNING)
                continue
            count += 1
        self.message_user(request, f"{done}: {count}", level=messages.SUCCESS)

    @admin.action(description="Поставить на паузу")
    def pause_selected(self, request, queryset):
        self._apply(request, queryset, pause_membership, "На паузе")

    @admin.action(description="Снять с паузы")
    def resume_selected(self, request, queryset):
        self._apply(request, queryset, resume_membership, "Возобновлено")

    @admin.action(description="Отменить")
    def cancel_selected(self, request, queryset):
        self._apply(request, queryset, cancel_membership, "Отменено")
