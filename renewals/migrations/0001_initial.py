from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True
    dependencies = [("gyms", "0001_initial")]
    operations = [
        migrations.CreateModel(
            name="RenewalHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("executed_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Выполнено")),
                (
                    "execution_type",
                    models.CharField(
                        choices=[("automatic", "Автоматически"), ("manual", "Вручную"), ("individual", "Один абонемент")],
                        default="automatic",
                        max_length=16,
                        verbose_name="Запуск",
                    ),
                ),
                ("processed_memberships", models.PositiveIntegerField(default=0, verbose_name="Обработано")),
                ("successful_renewals", models.PositiveIntegerField(default=0, verbose_name="Продлено")),
                ("failed_renewals", models.PositiveIntegerField(default=0, verbose_name="Ошибок")),
                ("price_updates", models.PositiveIntegerField(default=0, verbose_name="Новых цен")),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=14, verbose_name="Сумма")),
                ("errors", models.JSONField(blank=True, default=list, verbose_name="Ошибки")),
                ("details", models.JSONField(blank=True, default=list, verbose_name="Детали")),
                (
                    "gym",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="renewal_history",
                        to="gyms.gym",
                        verbose_name="Зал",
                    ),
                ),
            ],
            options={
                "verbose_name": "Запуск продления",
                "verbose_name_plural": "История продлений",
                "ordering": ("-executed_at", "-id"),
            },
        ),
    ]
