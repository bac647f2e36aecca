from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True
    dependencies = [("gyms", "0001_initial")]
    operations = [
        migrations.CreateModel(
            name="Activity",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=160, verbose_name="Название")),
                ("description", models.TextField(blank=True, default="", verbose_name="Описание")),
                ("price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Цена")),
                ("cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Стоимость")),
                (
                    "monthly_price",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Цена в месяц"),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Активна")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "gym",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activities",
                        to="gyms.gym",
                        verbose_name="Зал",
                    ),
                ),
            ],
            options={
                "verbose_name": "Активность",
                "verbose_name_plural": "Активности",
                "ordering": ("name", "id"),
            },
        ),
        migrations.CreateModel(
            name="MembershipPlan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=160, verbose_name="Название")),
                ("cost", models.DecimalField(decimal_places=2, default=0, max_digits=12, verbose_name="Стоимость")),
                (
                    "max_attendances",
                    models.PositiveIntegerField(default=0, help_text="0 — без ограничений", verbose_name="Посещений в месяц"),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="Активен")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "activity",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="plans",
                        to="activities.activity",
                        verbose_name="Активность",
                    ),
                ),
                (
                    "gym",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="membership_plans",
                        to="gyms.gym",
                        verbose_name="Зал",
                    ),
                ),
            ],
            options={
                "verbose_name": "Тариф",
                "verbose_name_plural": "Тарифы",
                "ordering": ("activity", "-is_active", "id"),
            },
        ),
    ]
