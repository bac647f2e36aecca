from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True
    dependencies = [("gyms", "0001_initial")]
    operations = [
        migrations.CreateModel(
            name="Member",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=120, verbose_name="Имя")),
                ("last_name", models.CharField(blank=True, max_length=120, verbose_name="Фамилия")),
                ("phone", models.CharField(blank=True, max_length=32, verbose_name="Телефон")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="E-mail")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Активен"), ("inactive", "Неактивен"), ("suspended", "Приостановлен")],
                        db_index=True,
                        default="active",
                        max_length=16,
                        verbose_name="Статус",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "gym",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="members",
                        to="gyms.gym",
                        verbose_name="Зал",
                    ),
                ),
            ],
            options={
                "verbose_name": "Клиент",
                "verbose_name_plural": "Клиенты",
                "ordering": ("last_name", "first_name", "id"),
                "indexes": [models.Index(fields=["gym", "status"], name="member_gym_status_idx")],
            },
        ),
    ]
