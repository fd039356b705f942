import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='filterdefinition',
            name='page_limit',
            field=models.PositiveIntegerField(
                default=18, validators=[django.core.validators.MinValueValidator(1)],
            ),
        ),
    ]
