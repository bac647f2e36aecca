from django.db import models

from gyms.models import Gym


class Activity(models.Model):
    gym = models.ForeignKey(Gym, on_delete=models.CASCADE, related_name="activities", verbose_name="Зал")
    name = models.CharField("Название", max_length=160)
    description = models.TextField("Описание", blank=True, default="")

    # Цена может лежать в любом из трёх полей (исторически по-разному заполняли).
    # Порядок приоритета: price → cost → monthly_price.
    price = models.DecimalField("Цена", max_digits=12, decimal_places=2, null=True, blank=True)
    cost = models.DecimalField("Стоимость", max_digits=12, decimal_places=2, null=True, blank=True)
    monthly_price = models.DecimalField("Цена в месяц", max_digits=12, decimal_places=2, null=True, blank=True)

    is_active = models.BooleanField("Активна", default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Активность"
        verbose_name_plural = "Активности"
        ordering = ("name", "id")

    def __str__(self):
        return self.name


class MembershipPlan(models.Model):
    gym = models.ForeignKey(Gym, on_delete=models.CASCADE, related_name="membership_plans", verbose_name="Зал")
    activity = models.ForeignKey(
        Activity,
        on_delete=models.CASCADE,
        related_name="plans",
        verbose_name="Активность",
    )
    name = models.CharField("Название", max_length=160)
    cost = models.DecimalField("Стоимость", max_digits=12, decimal_places=2, default=0)
    max_attendances = models.PositiveIntegerField(
        "Посещений в месяц",
        default=0,
        help_text="0 — без ограничений",
    )
    is_active = models.BooleanField("Активен", default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Тариф"
        verbose_name_plural = "Тарифы"
        ordering = ("activity", "-is_active", "id")

    def __str__(self):
        return f"{self.name} ({self.cost})"
