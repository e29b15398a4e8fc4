from __future__ import annotations

import base64
from dataclasses import dataclass, field
import mimetypes
from typing import Any, Iterable

from django.http import HttpRequest

from schools.models import School
from students.models import Student

from .errors import PackingPreconditionError

SAMPLE_ENTITY_ID = "sample"
SAMPLE_ATTRIBUTES = {
    "fullName": "Amara Okafor",
    "firstName": "Amara",
    "lastName": "Okafor",
    "admissionNumber": "ADM-2024-0042",
    "grade": "Grade 7",
    "bloodGroup": "O+",
    "photoUrl": "",
    "schoolName": "Sample Academy",
    "schoolLogoUrl": "",
}


@dataclass(frozen=True)
class CardEntity:
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)


def sample_entity(school: School | None = None) -> CardEntity:
    attributes = dict(SAMPLE_ATTRIBUTES)
    if school is not None:
        attributes["schoolName"] = school.name
        attributes["schoolLogoUrl"] = _image_data_uri(school.logo)
    return CardEntity(id=SAMPLE_ENTITY_ID, attributes=attributes)


def _image_data_uri(image_field) -> str:
    if not image_field or not getattr(image_field, "name", ""):
        return ""
    try:
        with image_field.open("rb") as image_stream:
            image_bytes = image_stream.read()
    except OSError:
        return ""
    if not image_bytes:
        return ""
    mime_type = mimetypes.guess_type(str(image_field.name))[0] or "image/png"
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"


def _absolute_url(url: str, request: HttpRequest | None) -> str:
    if url and url.startswith("/") and request is not None:
        return request.build_absolute_uri(url)
    return url


def student_card_attributes(
    student: Student,
    *,
    request: HttpRequest | None = None,
) -> dict[str, Any]:
    school = student.school
    photo_url = _image_data_uri(student.photo) or _absolute_url(student.photo_url, request)
    logo_url = _image_data_uri(school.logo) or _absolute_url(school.logo_url, request)
    attributes = {
        "fullName": student.full_name,
        "firstName": student.first_name,
        "lastName": student.last_name,
        "admissionNumber": student.admission_number,
        "grade": student.grade,
        "bloodGroup": student.blood_group,
        "photoUrl": photo_url,
        "schoolName": school.name,
        "schoolLogoUrl": logo_url,
    }
    # Blank values stay out of the bag so bindings treat them as missing.
    return {key: value for key, value in attributes.items() if value}


def entity_from_student(student: Student, *, request: HttpRequest | None = None) -> CardEntity:
    return CardEntity(
        id=str(student.pk),
        attributes=student_card_attributes(student, request=request),
    )


def dedupe_ids(raw_ids: Iterable[Any]) -> list[int]:
    ordered: list[int] = []
    seen: set[int] = set()
    for raw_id in raw_ids:
        student_id = int(raw_id)
        if student_id in seen:
            continue
        seen.add(student_id)
        ordered.append(student_id)
    return ordered


def build_selection(
    school: School,
    student_ids: Iterable[Any],
    *,
    request: HttpRequest | None = None,
) -> list[CardEntity]:
    """Load the school's students in request order, one entity per distinct id."""
    ordered_ids = dedupe_ids(student_ids)
    students = {
        student.pk: student
        for student in Student.objects.select_related("school").filter(
            school=school,
            id__in=ordered_ids,
        )
    }
    missing_ids = [student_id for student_id in ordered_ids if student_id not in students]
    if missing_ids:
        raise PackingPreconditionError(
            "Unknown student id(s) for this school: "
            + ", ".join(str(student_id) for student_id in missing_ids)
        )
    return [
        entity_from_student(students[student_id], request=request) for student_id in ordered_ids
    ]
