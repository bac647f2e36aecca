from django.db import models

from gyms.models import Gym


class Member(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Активен"
        INACTIVE = "inactive", "Неактивен"
        SUSPENDED = "suspended", "Приостановлен"

    gym = models.ForeignKey(Gym, on_delete=models.CASCADE, related_name="members", verbose_name="Зал")
    first_name = models.CharField("Имя", max_length=120)
    last_name = models.CharField("Фамилия", max_length=120, blank=True)
    phone = models.CharField("Телефон", max_length=32, blank=True)
    email = models.EmailField("E-mail", blank=True, default="")
    status = models.CharField(
        "Статус",
        max_length=16,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Клиент"
        verbose_name_plural = "Клиенты"
        ordering = ("last_name", "first_name", "id")
        indexes = [
            models.Index(fields=["gym", "status"], name="member_gym_status_idx"),
        ]

    def get_full_name(self):
        return " ".join(
            part.strip() for part in [self.first_name, self.last_name] if part and part.strip()
        ).strip()

    def __str__(self):
        return self.get_full_name() or self.phone or f"Клиент #{self.pk}"
