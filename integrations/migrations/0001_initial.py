import uuid

from django.db import migrations, models

import integrations.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IntegrationApiKey",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "key",
                    models.CharField(
                        db_index=True, default=integrations.models.generate_api_key, max_length=64, unique=True
                    ),
                ),
                ("name", models.CharField(help_text="e.g. 'Checkout' or 'Review service'", max_length=50)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
    ]
