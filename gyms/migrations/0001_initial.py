from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True
    dependencies = []
    operations = [
        migrations.CreateModel(
            name="Gym",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=160, verbose_name="Название")),
                (
                    "timezone",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="IANA, например America/Argentina/Buenos_Aires. Пусто — TIME_ZONE из настроек.",
                        max_length=64,
                        verbose_name="Часовой пояс",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Активен")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Зал",
                "verbose_name_plural": "Залы",
                "ordering": ("name", "id"),
            },
        ),
    ]
