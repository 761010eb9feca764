import django.core.validators
from django.db import migrations, models

import shopadmin.catalog.validators


class Migration(migrations.Migration):

    dependencies = [
        ('catalog', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='billboard',
            name='image_url',
            field=models.CharField(max_length=500, validators=[shopadmin.catalog.validators.validate_image_url]),
        ),
        migrations.AlterField(
            model_name='image',
            name='url',
            field=models.CharField(max_length=500, validators=[shopadmin.catalog.validators.validate_image_url]),
        ),
        migrations.AlterField(
            model_name='color',
            name='value',
            field=models.CharField(max_length=9, validators=[django.core.validators.RegexValidator(message='String must be a valid hex code', regex='^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$')]),
        ),
    ]
