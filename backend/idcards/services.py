from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from schools.models import School

from .models import IDCardTemplate

logger = logging.getLogger(__name__)

COPIED_FIELDS = (
    "description",
    "orientation",
    "width",
    "height",
    "unit",
    "bleed",
    "safe_margin",
)


def _copy_layout(layout):
    if isinstance(layout, list):
        return [dict(zone) if isinstance(zone, dict) else zone for zone in layout]
    return layout


def _copy_template(source: IDCardTemplate, **overrides) -> IDCardTemplate:
    values = {field_name: getattr(source, field_name) for field_name in COPIED_FIELDS}
    values["layout"] = _copy_layout(source.layout)
    values.update(overrides)
    template = IDCardTemplate(**values)
    template.full_clean()
    template.save()
    return template


@transaction.atomic
def customize_template(
    template: IDCardTemplate,
    *,
    school: School,
    actor=None,
) -> tuple[IDCardTemplate, bool]:
    """Return the school's override of ``template``, creating it on first use."""
    if template.owner_scope != IDCardTemplate.OwnerScope.SYSTEM:
        raise ValidationError({"template": "Only system templates can be customized."})

    existing = (
        IDCardTemplate.objects.select_for_update()
        .filter(school=school, parent_template=template)
        .order_by("id")
        .first()
    )
    if existing is not None:
        return existing, False

    override = _copy_template(
        template,
        name=template.name,
        school=school,
        is_system=False,
        parent_template=template,
        created_by=actor,
    )
    logger.info(
        "School %s customized system template %s as %s.", school.pk, template.pk, override.pk
    )
    return override, True


@transaction.atomic
def reset_template_override(template: IDCardTemplate) -> IDCardTemplate:
    """Delete a school override and return the system template it shadowed."""
    if not template.is_override:
        raise ValidationError({"template": "Only customized templates can be reset."})
    parent = template.parent_template
    logger.info(
        "School %s reset override %s of system template %s.",
        template.school_id,
        template.pk,
        template.parent_template_id,
    )
    template.delete()
    return parent


@transaction.atomic
def duplicate_template(
    template: IDCardTemplate,
    *,
    school: School,
    actor=None,
) -> IDCardTemplate:
    return _copy_template(
        template,
        name=f"{template.name} (Copy)"[:120],
        school=school,
        is_system=False,
        parent_template=None,
        created_by=actor,
    )
