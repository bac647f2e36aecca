import gyms.models
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [("gyms", "0001_initial")]
    operations = [
        migrations.AlterField(
            model_name="gym",
            name="timezone",
            field=models.CharField(
                blank=True,
                default="",
                help_text="IANA, например America/Argentina/Buenos_Aires. Пусто — TIME_ZONE из настроек.",
                max_length=64,
                validators=[gyms.models.validate_timezone_name],
                verbose_name="Часовой пояс",
            ),
        ),
    ]
