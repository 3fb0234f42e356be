import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Privilege",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "code",
                    models.CharField(
                        max_length=64,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^[A-Z_]+$", "Code can only contain uppercase letters and underscores."
                            )
                        ],
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("description", models.CharField(max_length=500)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("user_management", "User management"),
                            ("inventory", "Inventory"),
                            ("sales", "Sales"),
                            ("prescriptions", "Prescriptions"),
                            ("reports", "Reports"),
                            ("system", "System"),
                            ("store_management", "Store management"),
                            ("drug_management", "Drug management"),
                        ],
                        max_length=32,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["category", "name"],
                "indexes": [
                    models.Index(fields=["category"], name="privilege_category_idx"),
                    models.Index(fields=["is_active"], name="privilege_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Role",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "code",
                    models.CharField(
                        max_length=64,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^[A-Z_]+$", "Code can only contain uppercase letters and underscores."
                            )
                        ],
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("description", models.CharField(max_length=500)),
                ("is_active", models.BooleanField(default=True)),
                ("is_system", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "privileges",
                    models.ManyToManyField(blank=True, related_name="roles", to="access_control.privilege"),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["is_active"], name="role_active_idx"),
                    models.Index(fields=["is_system"], name="role_system_idx"),
                ],
            },
        ),
    ]
