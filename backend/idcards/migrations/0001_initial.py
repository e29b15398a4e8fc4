from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("schools", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="IDCardTemplate",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("is_system", models.BooleanField(default=False)),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True)),
                (
                    "orientation",
                    models.CharField(
                        choices=[("VERTICAL", "Vertical"), ("HORIZONTAL", "Horizontal")],
                        default="VERTICAL",
                        max_length=12,
                    ),
                ),
                (
                    "width",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("86.00"),
                        max_digits=8,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                (
                    "height",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("54.00"),
                        max_digits=8,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                (
                    "unit",
                    models.CharField(
                        choices=[("mm", "Millimetres"), ("cm", "Centimetres"), ("in", "Inches")],
                        default="mm",
                        max_length=2,
                    ),
                ),
                (
                    "bleed",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("3.00"),
                        help_text="Bleed in millimetres on every edge.",
                        max_digits=6,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "safe_margin",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("5.00"),
                        help_text="Safe area inset in millimetres from the trim line.",
                        max_digits=6,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("layout", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="id_card_templates_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "parent_template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="child_templates",
                        to="idcards.idcardtemplate",
                    ),
                ),
                (
                    "school",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="id_card_templates",
                        to="schools.school",
                    ),
                ),
            ],
            options={
                "ordering": ["name", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("width__gt", 0), ("height__gt", 0)),
                        name="idcard_template_positive_size",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("bleed__gte", 0), ("safe_margin__gte", 0)),
                        name="idcard_template_nonnegative_bleed",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("is_system", False), ("school__isnull", True), _connector="OR"),
                        name="idcard_template_system_has_no_school",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("parent_template__isnull", True),
                            ("school__isnull", False),
                            _connector="OR",
                        ),
                        name="idcard_template_override_has_school",
                    ),
                ],
            },
        ),
    ]
