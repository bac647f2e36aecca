from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True
    dependencies = [
        ("activities", "0001_initial"),
        ("gyms", "0001_initial"),
        ("members", "0001_initial"),
        ("memberships", "0001_initial"),
    ]
    operations = [
        migrations.CreateModel(
            name="MonthlyPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("member_name", models.CharField(blank=True, default="", max_length=255, verbose_name="Клиент (ФИО)")),
                ("activity_name", models.CharField(blank=True, default="", max_length=160, verbose_name="Активность (название)")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Сумма")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Ожидает оплаты"), ("overdue", "Просрочен"), ("paid", "Оплачен")],
                        db_index=True,
                        default="pending",
                        max_length=12,
                        verbose_name="Статус",
                    ),
                ),
                ("due_date", models.DateField(db_index=True, verbose_name="Оплатить до")),
                ("billing_year", models.PositiveSmallIntegerField(verbose_name="Год")),
                ("billing_month", models.PositiveSmallIntegerField(verbose_name="Месяц")),
                ("auto_generated", models.BooleanField(default=False, verbose_name="Создан системой")),
                ("renewal_payment", models.BooleanField(default=False, verbose_name="Платёж продления")),
                ("price_updated", models.BooleanField(default=False, verbose_name="Цена изменилась")),
                (
                    "previous_price",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Прежняя цена"),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="Оплачено")),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[("cash", "Наличные"), ("card", "Карта"), ("transfer", "Перевод")],
                        default="",
                        max_length=12,
                        verbose_name="Способ оплаты",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "activity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="monthly_payments",
                        to="activities.activity",
                        verbose_name="Активность",
                    ),
                ),
                (
                    "gym",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="monthly_payments",
                        to="gyms.gym",
                        verbose_name="Зал",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="monthly_payments",
                        to="members.member",
                        verbose_name="Клиент",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="monthly_payments",
                        to="memberships.membership",
                        verbose_name="Абонемент",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ежемесячный платёж",
                "verbose_name_plural": "Ежемесячные платежи",
                "ordering": ("-billing_year", "-billing_month", "member_name", "id"),
                "indexes": [
                    models.Index(fields=["gym", "billing_year", "billing_month"], name="payment_gym_period_idx"),
                    models.Index(fields=["gym", "status", "due_date"], name="payment_gym_status_due_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("membership", "billing_year", "billing_month"),
                        name="uniq_monthly_payment_membership_period",
                    ),
                ],
            },
        ),
    ]
