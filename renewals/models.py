from django.db import models

from gyms.models import Gym


class RenewalHistory(models.Model):
    class ExecutionType(models.TextChoices):
        AUTOMATIC = "automatic", "Автоматически"
        MANUAL = "manual", "Вручную"
        INDIVIDUAL = "individual", "Один абонемент"

    gym = models.ForeignKey(Gym, on_delete=models.CASCADE, related_name="renewal_history", verbose_name="Зал")
    executed_at = models.DateTimeField("Выполнено", auto_now_add=True, db_index=True)
    execution_type = models.CharField(
        "Запуск",
        max_length=16,
        choices=ExecutionType.choices,
        default=ExecutionType.AUTOMATIC,
    )

    processed_memberships = models.PositiveIntegerField("Обработано", default=0)
    successful_renewals = models.PositiveIntegerField("Продлено", default=0)
    failed_renewals = models.PositiveIntegerField("Ошибок", default=0)
    price_updates = models.PositiveIntegerField("Новых цен", default=0)
    total_amount = models.DecimalField("Сумма", max_digits=14, decimal_places=2, default=0)

    errors = models.JSONField("Ошибки", default=list, blank=True)
    details = models.JSONField("Детали", default=list, blank=True)

    class Meta:
        verbose_name = "Запуск продления"
        verbose_name_plural = "История продлений"
        ordering = ("-executed_at", "-id")

    def __str__(self):
        return f"{self.gym} · {self.executed_at:%Y-%m-%d %H:%M} · {self.successful_renewals}/{self.processed_memberships}"
