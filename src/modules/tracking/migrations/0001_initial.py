from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("couriers", "0001_initial"),
        ("deliveries", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="TrackingSample",
            fields=[
                (
                    "delivery",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="tracking",
                        serialize=False,
                        to="deliveries.deliveryorder",
                    ),
                ),
                ("lat", models.FloatField()),
                ("lng", models.FloatField()),
                ("heading", models.FloatField(blank=True, null=True)),
                ("speed_mps", models.FloatField(blank=True, null=True)),
                ("accuracy_m", models.FloatField(blank=True, null=True)),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("foreground", "Foreground watch"),
                            ("background", "Background task"),
                            ("manual", "Manual sync"),
                        ],
                        default="foreground",
                        max_length=12,
                    ),
                ),
                ("captured_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "courier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tracking_samples",
                        to="couriers.courier",
                    ),
                ),
            ],
            options={
                "db_table": "delivery_tracking",
                "indexes": [
                    models.Index(fields=["courier"], name="dt_courier_idx"),
                    models.Index(fields=["-updated_at"], name="dt_updated_idx"),
                ],
            },
        ),
    ]
