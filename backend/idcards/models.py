from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from schools.models import School

MM_PER_UNIT = {
    "mm": Decimal("1"),
    "cm": Decimal("10"),
    "in": Decimal("25.4"),
}


class IDCardTemplate(models.Model):
    class Orientation(models.TextChoices):
        VERTICAL = "VERTICAL", "Vertical"
        HORIZONTAL = "HORIZONTAL", "Horizontal"

    class Unit(models.TextChoices):
        MM = "mm", "Millimetres"
        CM = "cm", "Centimetres"
        IN = "in", "Inches"

    class OwnerScope(models.TextChoices):
        SYSTEM = "system", "System"
        TENANT = "tenant", "School"

    school = models.ForeignKey(
        School,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="id_card_templates",
    )
    is_system = models.BooleanField(default=False)  # pyright: ignore[reportArgumentType]
    parent_template = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="child_templates",
    )
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    orientation = models.CharField(
        max_length=12,
        choices=Orientation.choices,
        default=Orientation.VERTICAL,
    )
    width = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal("86.00"),
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    height = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal("54.00"),
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    unit = models.CharField(max_length=2, choices=Unit.choices, default=Unit.MM)
    bleed = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal("3.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Bleed in millimetres on every edge.",
    )
    safe_margin = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal("5.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Safe area inset in millimetres from the trim line.",
    )
    layout = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="id_card_templates_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(width__gt=0) & Q(height__gt=0),
                name="idcard_template_positive_size",
            ),
            models.CheckConstraint(
                condition=Q(bleed__gte=0) & Q(safe_margin__gte=0),
                name="idcard_template_nonnegative_bleed",
            ),
            models.CheckConstraint(
                condition=Q(is_system=False) | Q(school__isnull=True),
                name="idcard_template_system_has_no_school",
            ),
            models.CheckConstraint(
                condition=Q(parent_template__isnull=True) | Q(school__isnull=False),
                name="idcard_template_override_has_school",
            ),
        ]

    @property
    def owner_scope(self) -> str:
        if self.is_system and self.school_id is None:
            return self.OwnerScope.SYSTEM
        return self.OwnerScope.TENANT

    @property
    def is_override(self) -> bool:
        return self.parent_template_id is not None and self.school_id is not None

    def clean(self):
        super().clean()
        errors: dict[str, str] = {}
        if self.width is not None and Decimal(str(self.width)) <= 0:
            errors["width"] = "Width must be greater than zero."
        if self.height is not None and Decimal(str(self.height)) <= 0:
            errors["height"] = "Height must be greater than zero."
        if self.bleed is not None and Decimal(str(self.bleed)) < 0:
            errors["bleed"] = "Bleed cannot be negative."
        if self.is_system and self.school_id is not None:
            errors["school"] = "System templates cannot belong to a school."
        if self.parent_template_id is not None:
            parent = self.parent_template
            if self.school_id is None:
                errors["school"] = "A customized template must belong to a school."
            elif parent is not None and parent.owner_scope != self.OwnerScope.SYSTEM:
                errors["parent_template"] = "Only system templates can be customized."
            elif self.pk is not None and self.parent_template_id == self.pk:
                errors["parent_template"] = "A template cannot customize itself."
        if errors:
            raise ValidationError(errors)

    def __str__(self) -> str:
        return str(self.name)
