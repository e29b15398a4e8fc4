from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from .card_layout import CARD_SIDES, parse_layout
from .errors import CardRenderError
from .models import IDCardTemplate
from .template_resolution import template_status


class IDCardTemplateSerializer(serializers.ModelSerializer):
    owner_scope = serializers.CharField(read_only=True)
    status = serializers.SerializerMethodField()

    class Meta:
        model = IDCardTemplate
        fields = [
            "id",
            "name",
            "description",
            "school",
            "is_system",
            "parent_template",
            "owner_scope",
            "status",
            "orientation",
            "width",
            "height",
            "unit",
            "bleed",
            "safe_margin",
            "layout",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "school",
            "is_system",
            "parent_template",
            "created_by",
            "created_at",
            "updated_at",
        ]

    def get_status(self, obj: IDCardTemplate) -> str:
        return template_status(obj, self.context.get("overrides") or {})

    def validate_layout(self, value):
        try:
            parse_layout(value)
        except CardRenderError as exc:
            raise serializers.ValidationError(exc.detail) from exc
        return value


class CardPreviewRequestSerializer(serializers.Serializer):
    student_id = serializers.IntegerField(required=False, min_value=1)
    school_id = serializers.IntegerField(required=False, min_value=1)
    side = serializers.ChoiceField(choices=CARD_SIDES, required=False, default="FRONT")
    zoom = serializers.DecimalField(
        required=False,
        max_digits=4,
        decimal_places=2,
        min_value=Decimal("0.10"),
        max_value=Decimal("4.00"),
        default=Decimal("1.00"),
    )
    include_guides = serializers.BooleanField(required=False, default=False)


class PrintRequestSerializer(serializers.Serializer):
    school_id = serializers.IntegerField(required=False, min_value=1)
    student_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=True,
    )
    zoom = serializers.DecimalField(
        required=False,
        max_digits=4,
        decimal_places=2,
        min_value=Decimal("0.10"),
        max_value=Decimal("4.00"),
        default=Decimal("1.00"),
    )
