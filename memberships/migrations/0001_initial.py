from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True
    dependencies = [
        ("activities", "0001_initial"),
        ("members", "0001_initial"),
    ]
    operations = [
        migrations.CreateModel(
            name="Membership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("activity_name", models.CharField(blank=True, default="", max_length=160, verbose_name="Активность (название)")),
                ("description", models.CharField(blank=True, default="", max_length=255, verbose_name="Описание")),
                ("cost", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Стоимость")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Активен"), ("paused", "На паузе"), ("cancelled", "Отменён")],
                        db_index=True,
                        default="active",
                        max_length=16,
                        verbose_name="Статус",
                    ),
                ),
                ("auto_renewal", models.BooleanField(default=True, verbose_name="Автопродление")),
                ("start_date", models.DateField(verbose_name="Начало")),
                ("end_date", models.DateField(verbose_name="Окончание")),
                (
                    "max_attendances",
                    models.PositiveIntegerField(default=0, help_text="0 — без ограничений", verbose_name="Посещений в период"),
                ),
                ("current_attendances", models.PositiveIntegerField(default=0, verbose_name="Посещено")),
                ("renewed_automatically", models.BooleanField(default=False, verbose_name="Продлён автоматически")),
                ("renewal_date", models.DateTimeField(blank=True, null=True, verbose_name="Дата продления")),
                ("version", models.PositiveIntegerField(default=0)),
                ("paused_at", models.DateTimeField(blank=True, null=True)),
                ("pause_reason", models.CharField(blank=True, default="", max_length=255, verbose_name="Причина паузы")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "activity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="memberships",
                        to="activities.activity",
                        verbose_name="Активность",
                    ),
                ),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="members.member",
                        verbose_name="Клиент",
                    ),
                ),
            ],
            options={
                "verbose_name": "Абонемент",
                "verbose_name_plural": "Абонементы",
                "ordering": ("member_id", "id"),
                "indexes": [
                    models.Index(fields=["status", "auto_renewal", "end_date"], name="membership_renewal_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gte", models.F("start_date"))),
                        name="membership_end_after_start",
                    ),
                ],
            },
        ),
    ]
