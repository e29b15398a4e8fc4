from __future__ import annotations

from collections import defaultdict
import logging
from typing import Iterable

from django.db.models import Q, QuerySet

from schools.models import School

from .models import IDCardTemplate

logger = logging.getLogger(__name__)

STATUS_INHERITED = "inherited"
STATUS_CUSTOMIZED = "customized"
STATUS_OVERRIDE = "override"
STATUS_STANDALONE = "standalone"


def visible_templates_for_school(school: School) -> QuerySet[IDCardTemplate]:
    """System defaults plus everything the school owns."""
    return (
        IDCardTemplate.objects.select_related("parent_template", "school")
        .filter(Q(school=school) | Q(is_system=True, school__isnull=True))
        .order_by("name", "id")
    )


def _is_system_template(template: IDCardTemplate) -> bool:
    return bool(template.is_system) and template.school_id is None


def overrides_by_parent(
    templates: Iterable[IDCardTemplate],
    *,
    school_id: int | None = None,
) -> dict[int, list[IDCardTemplate]]:
    overrides: dict[int, list[IDCardTemplate]] = defaultdict(list)
    for template in templates:
        if template.parent_template_id is None or template.school_id is None:
            continue
        if school_id is not None and template.school_id != school_id:
            continue
        overrides[template.parent_template_id].append(template)
    return dict(overrides)


def resolve_effective_templates(
    templates: Iterable[IDCardTemplate],
    *,
    school_id: int | None = None,
) -> list[IDCardTemplate]:
    """Drop every system template the school has overridden.

    The result is ordered by name then id, so it does not depend on the order
    of ``templates``. Layout contents are not inspected here.
    """
    candidates = list(templates)
    if school_id is not None:
        candidates = [
            template
            for template in candidates
            if template.school_id is None or template.school_id == school_id
        ]
    overrides = overrides_by_parent(candidates, school_id=school_id)
    for parent_id, lineage in overrides.items():
        if len(lineage) > 1:
            logger.warning(
                "Resolution ambiguity: system template %s has %d overrides for school %s (%s); "
                "keeping all of them.",
                parent_id,
                len(lineage),
                lineage[0].school_id,
                ", ".join(str(template.pk) for template in sorted(lineage, key=lambda t: t.pk)),
            )

    resolved = [
        template
        for template in candidates
        if not (_is_system_template(template) and template.pk in overrides)
    ]
    return sorted(resolved, key=lambda template: (str(template.name), template.pk or 0))


def effective_templates_for_school(school: School) -> list[IDCardTemplate]:
    return resolve_effective_templates(
        visible_templates_for_school(school),
        school_id=school.pk,
    )


def template_status(
    template: IDCardTemplate,
    overrides: dict[int, list[IDCardTemplate]],
) -> str:
    if _is_system_template(template):
        return STATUS_CUSTOMIZED if template.pk in overrides else STATUS_INHERITED
    if template.parent_template_id is not None:
        return STATUS_OVERRIDE
    return STATUS_STANDALONE
