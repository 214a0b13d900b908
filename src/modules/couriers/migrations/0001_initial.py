from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Courier",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="courier_profile",
                        serialize=False,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("offline", "Offline"),
                            ("online", "Online"),
                            ("busy", "Busy"),
                        ],
                        default="offline",
                        max_length=10,
                    ),
                ),
                (
                    "vehicle_type",
                    models.CharField(
                        choices=[
                            ("walk", "On foot"),
                            ("bike", "Bike"),
                            ("scooter", "Scooter"),
                            ("car", "Car"),
                        ],
                        default="bike",
                        max_length=10,
                    ),
                ),
                ("total_deliveries", models.PositiveIntegerField(default=0)),
                ("total_earnings_cents", models.PositiveBigIntegerField(default=0)),
            ],
            options={
                "db_table": "couriers",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="couriers_status_idx"),
                ],
            },
        ),
    ]
