from django.contrib.auth.models import AbstractUser
from django.db import models

from gyms.models import Gym


class User(AbstractUser):
    full_name = models.CharField("ФИО", max_length=255, blank=True)
    phone = models.CharField("Телефон", max_length=32, blank=True)
    # Администратор зала; у суперадмина зала нет
    gym = models.ForeignKey(
        Gym,
        on_delete=models.SET_NULL,
        related_name="admins",
        null=True,
        blank=True,
        verbose_name="Зал",
    )

    def get_full_name(self):
        full_name = (self.full_name or "").strip()
        if full_name:
            return full_name

        legacy_full_name = " ".join(
            part.strip() for part in [self.first_name, self.last_name] if part and part.strip()
        ).strip()
        return legacy_full_name

    def get_short_name(self):
        full_name = self.get_full_name()
        if not full_name:
            return ""
        return full_name.split()[0]

    def __str__(self):
        return self.get_full_name() or self.username or f"Админ #{self.pk}"
