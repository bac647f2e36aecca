from django.db import models
from django.db.models import Q

from activities.models import Activity
from gyms.models import Gym
from members.models import Member
from memberships.models import Membership


class MonthlyPaymentQuerySet(models.QuerySet):
    def unpaid(self):
        return self.filter(status__in=[MonthlyPayment.Status.PENDING, MonthlyPayment.Status.OVERDUE])

    def overdue(self, today):
        # Просрочка вычисляется от даты, в базе статус остаётся pending
        return self.filter(
            Q(status=MonthlyPayment.Status.OVERDUE)
            | Q(status=MonthlyPayment.Status.PENDING, due_date__lt=today)
        )

    def for_period(self, year: int, month: int):
        return self.filter(billing_year=year, billing_month=month)


class MonthlyPayment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Ожидает оплаты"
        OVERDUE = "overdue", "Просрочен"
        PAID = "paid", "Оплачен"

    class Method(models.TextChoices):
        CASH = "cash", "Наличные"
        CARD = "card", "Карта"
        TRANSFER = "transfer", "Перевод"

    gym = models.ForeignKey(Gym, on_delete=models.CASCADE, related_name="monthly_payments", verbose_name="Зал")
    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="monthly_payments", verbose_name="Клиент")
    membership = models.ForeignKey(
        Membership,
        on_delete=models.CASCADE,
        related_name="monthly_payments",
        verbose_name="Абонемент",
    )
    activity = models.ForeignKey(
        Activity,
        on_delete=models.SET_NULL,
        related_name="monthly_payments",
        null=True,
        blank=True,
        verbose_name="Активность",
    )
    member_name = models.CharField("Клиент (ФИО)", max_length=255, blank=True, default="")
    activity_name = models.CharField("Активность (название)", max_length=160, blank=True, default="")

    # Сумма фиксируется при создании и не меняется задним числом
    amount = models.DecimalField("Сумма", max_digits=12, decimal_places=2)
    status = models.CharField("Статус", max_length=12, choices=Status.choices, default=Status.PENDING, db_index=True)
    due_date = models.DateField("Оплатить до", db_index=True)
    billing_year = models.PositiveSmallIntegerField("Год")
    billing_month = models.PositiveSmallIntegerField("Месяц")

    auto_generated = models.BooleanField("Создан системой", default=False)
    renewal_payment = models.BooleanField("Платёж продления", default=False)
    price_updated = models.BooleanField("Цена изменилась", default=False)
    previous_price = models.DecimalField("Прежняя цена", max_digits=12, decimal_places=2, null=True, blank=True)

    paid_at = models.DateTimeField("Оплачено", null=True, blank=True)
    payment_method = models.CharField("Способ оплаты", max_length=12, choices=Method.choices, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = MonthlyPaymentQuerySet.as_manager()

    class Meta:
        verbose_name = "Ежемесячный платёж"
        verbose_name_plural = "Ежемесячные платежи"
        ordering = ("-billing_year", "-billing_month", "member_name", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["membership", "billing_year", "billing_month"],
                name="uniq_monthly_payment_membership_period",
            )
        ]
        indexes = [
            models.Index(fields=["gym", "billing_year", "billing_month"], name="payment_gym_period_idx"),
            models.Index(fields=["gym", "status", "due_date"], name="payment_gym_status_due_idx"),
        ]

    def __str__(self):
        return f"{self.member_name} · {self.activity_name} · {self.billing_month:02d}/{self.billing_year} · {self.amount}"

    def is_overdue(self, today) -> bool:
        if self.status == self.Status.OVERDUE:
            return True
        return self.status == self.Status.PENDING and today > self.due_date

    def display_status(self, today) -> str:
        if self.is_overdue(today):
            return self.Status.OVERDUE
        return self.status

    def days_overdue(self, today) -> int:
        if not self.is_overdue(today):
            return 0
        return max(0, (today - self.due_date).days)
