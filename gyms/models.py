from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


def validate_timezone_name(value):
    if not value:
        return
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ValidationError(f"Неизвестный часовой пояс: {value}")


class Gym(models.Model):
    name = models.CharField("Название", max_length=160)
    timezone = models.CharField(
        "Часовой пояс",
        max_length=64,
        blank=True,
        default="",
        validators=[validate_timezone_name],
        help_text="IANA, например America/Argentina/Buenos_Aires. Пусто — TIME_ZONE из настроек.",
    )
    is_active = models.BooleanField("Активен", default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Зал"
        verbose_name_plural = "Залы"
        ordering = ("name", "id")

    def get_timezone(self):
        return ZoneInfo(self.timezone or settings.TIME_ZONE)

    def localdate(self):
        """Сегодняшняя дата по местному времени зала (без времени суток)."""
        return timezone.localdate(timezone=self.get_timezone())

    def __str__(self):
        return self.name or f"Зал #{self.pk}"
