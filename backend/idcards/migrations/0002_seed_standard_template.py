from decimal import Decimal

from django.db import migrations

STANDARD_TEMPLATE_NAME = "ID-Standard"

STANDARD_LAYOUT = [
    {
        "id": "front-header",
        "type": "RECTANGLE",
        "side": "FRONT",
        "x": 0,
        "y": 0,
        "width": 100,
        "height": 24,
        "z_index": 0,
        "style": {"background_color": "#1d4ed8"},
    },
    {
        "id": "front-logo",
        "type": "SCHOOL_LOGO",
        "side": "FRONT",
        "x": 4,
        "y": 4,
        "width": 14,
        "height": 16,
        "z_index": 1,
        "style": {"object_fit": "contain"},
    },
    {
        "id": "front-school-name",
        "type": "SCHOOL_NAME",
        "side": "FRONT",
        "x": 20,
        "y": 5,
        "width": 76,
        "height": 14,
        "z_index": 1,
        "style": {
            "font_family": "Outfit",
            "font_size": 9,
            "font_weight": "700",
            "color": "#ffffff",
            "uppercase": True,
            "vertical_align": "middle",
        },
    },
    {
        "id": "front-photo",
        "type": "STUDENT_PHOTO",
        "side": "FRONT",
        "x": 6,
        "y": 30,
        "width": 28,
        "height": 60,
        "z_index": 1,
        "style": {"border_radius": 1.5, "border_width": 0.3, "border_color": "#1d4ed8"},
    },
    {
        "id": "front-name",
        "type": "STUDENT_NAME",
        "side": "FRONT",
        "x": 38,
        "y": 30,
        "width": 58,
        "height": 14,
        "z_index": 1,
        "style": {"font_family": "Outfit", "font_size": 9, "font_weight": "700"},
    },
    {
        "id": "front-admission",
        "type": "ADMISSION_NUMBER",
        "side": "FRONT",
        "x": 38,
        "y": 48,
        "width": 58,
        "height": 10,
        "z_index": 1,
        "style": {"font_size": 7, "color": "#374151"},
    },
    {
        "id": "front-grade",
        "type": "GRADE",
        "side": "FRONT",
        "x": 38,
        "y": 60,
        "width": 58,
        "height": 10,
        "z_index": 1,
        "style": {"font_size": 7, "color": "#374151"},
    },
    {
        "id": "front-blood-group",
        "type": "BLOOD_GROUP",
        "side": "FRONT",
        "x": 38,
        "y": 72,
        "width": 58,
        "height": 10,
        "z_index": 1,
        "style": {"font_size": 7, "color": "#b91c1c", "font_weight": "600"},
    },
    {
        "id": "back-notice",
        "type": "TEXT",
        "side": "BACK",
        "x": 8,
        "y": 8,
        "width": 84,
        "height": 20,
        "z_index": 0,
        "content": "If found, please return this card to the school office.",
        "style": {"font_size": 6.5, "text_align": "center", "vertical_align": "middle"},
    },
    {
        "id": "back-qr",
        "type": "QR_CODE",
        "side": "BACK",
        "x": 36,
        "y": 34,
        "width": 28,
        "height": 46,
        "z_index": 0,
        "style": {"object_fit": "contain"},
    },
    {
        "id": "back-school-name",
        "type": "SCHOOL_NAME",
        "side": "BACK",
        "x": 8,
        "y": 84,
        "width": 84,
        "height": 10,
        "z_index": 0,
        "style": {"font_size": 6, "text_align": "center", "color": "#6b7280"},
    },
]


def seed_standard_template(apps, schema_editor):
    IDCardTemplate = apps.get_model("idcards", "IDCardTemplate")
    if IDCardTemplate.objects.filter(
        name=STANDARD_TEMPLATE_NAME,
        is_system=True,
        school__isnull=True,
    ).exists():
        return
    IDCardTemplate.objects.create(
        name=STANDARD_TEMPLATE_NAME,
        description="Default double-sided student card.",
        is_system=True,
        orientation="HORIZONTAL",
        width=Decimal("86.00"),
        height=Decimal("54.00"),
        unit="mm",
        bleed=Decimal("3.00"),
        safe_margin=Decimal("5.00"),
        layout=STANDARD_LAYOUT,
    )


def remove_standard_template(apps, schema_editor):
    IDCardTemplate = apps.get_model("idcards", "IDCardTemplate")
    IDCardTemplate.objects.filter(
        name=STANDARD_TEMPLATE_NAME,
        is_system=True,
        school__isnull=True,
        parent_template__isnull=True,
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("idcards", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_standard_template, remove_standard_template),
    ]
