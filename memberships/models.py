from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from activities.models import Activity
from members.models import Member


class Membership(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Активен"
        PAUSED = "paused", "На паузе"
        CANCELLED = "cancelled", "Отменён"

    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="memberships", verbose_name="Клиент")
    activity = models.ForeignKey(
        Activity,
        on_delete=models.SET_NULL,
        related_name="memberships",
        null=True,
        blank=True,
        verbose_name="Активность",
    )
    # Денормализовано для отображения: активность могут переименовать или удалить
    activity_name = models.CharField("Активность (название)", max_length=160, blank=True, default="")
    description = models.CharField("Описание", max_length=255, blank=True, default="")

    cost = models.DecimalField("Стоимость", max_digits=12, decimal_places=2, default=0)
    status = models.CharField("Статус", max_length=16, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    auto_renewal = models.BooleanField("Автопродление", default=True)

    start_date = models.DateField("Начало")
    end_date = models.DateField("Окончание")

    max_attendances = models.PositiveIntegerField("Посещений в период", default=0, help_text="0 — без ограничений")
    current_attendances = models.PositiveIntegerField("Посещено", default=0)

    renewed_automatically = models.BooleanField("Продлён автоматически", default=False)
    renewal_date = models.DateTimeField("Дата продления", null=True, blank=True)
    # Растёт при каждом продлении; продление пишет только если версия не изменилась
    version = models.PositiveIntegerField(default=0)

    paused_at = models.DateTimeField(null=True, blank=True)
    pause_reason = models.CharField("Причина паузы", max_length=255, blank=True, default="")
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Абонемент"
        verbose_name_plural = "Абонементы"
        ordering = ("member_id", "id")
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=F("start_date")),
                name="membership_end_after_start",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "auto_renewal", "end_date"], name="membership_renewal_idx"),
        ]

    def __str__(self):
        return f"{self.activity_name or 'Абонемент'} — {self.member}"

    def is_renewal_candidate(self) -> bool:
        return self.status == self.Status.ACTIVE and self.auto_renewal

    def is_expired(self, today) -> bool:
        return self.end_date <= today

    def needs_renewal(self, today) -> bool:
        return self.is_renewal_candidate() and self.is_expired(today)

    def attendances_left(self):
        if not self.max_attendances:
            return None
        return max(0, self.max_attendances - self.current_attendances)

    def can_attend(self) -> bool:
        if self.status != self.Status.ACTIVE:
            return False
        left = self.attendances_left()
        return left is None or left > 0

    def register_attendance(self) -> None:
        """
        Засчитать одно посещение.
        ValidationError если абонемент не активен или лимит исчерпан.
        """
        if self.status != self.Status.ACTIVE:
            raise ValidationError("Абонемент не активен")
        if not self.can_attend():
            raise ValidationError("Лимит посещений исчерпан")

        updated = (
            Membership.objects
            .filter(pk=self.pk, status=self.Status.ACTIVE)
            .filter(Q(max_attendances=0) | Q(current_attendances__lt=F("max_attendances")))
            .update(current_attendances=F("current_attendances") + 1)
        )
        if not updated:
            raise ValidationError("Лимит посещений исчерпан")
        self.refresh_from_db(fields=["current_attendances"])
