from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q
from django.http import HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.permissions import IsPlatformAdmin, IsPlatformAdminOrSchoolAdmin
from schools.models import School
from students.models import Student

from .card_entities import build_selection, entity_from_student, sample_entity
from .card_rendering import render_card_face, render_card_fragment_html, resolution_scale
from .conf import get_print_settings
from .errors import CardRenderError
from .models import IDCardTemplate
from .print_jobs import build_print_job, generate_print_pdf
from .serializers import (
    CardPreviewRequestSerializer,
    IDCardTemplateSerializer,
    PrintRequestSerializer,
)
from .services import customize_template, duplicate_template, reset_template_override
from .template_resolution import (
    effective_templates_for_school,
    overrides_by_parent,
    visible_templates_for_school,
)


def _is_platform_admin(user) -> bool:
    return bool(user and user.is_authenticated and user.role == "platform_admin")


def _is_school_admin(user) -> bool:
    return bool(user and user.is_authenticated and user.role == "school_admin")


def _validation_error_from_django(exc: DjangoValidationError) -> serializers.ValidationError:
    if hasattr(exc, "message_dict"):
        return serializers.ValidationError(exc.message_dict)
    return serializers.ValidationError({"detail": exc.messages})


class IDCardTemplateViewSet(viewsets.ModelViewSet):
    """School-facing templates: the effective set plus customization and printing."""

    serializer_class = IDCardTemplateSerializer
    permission_classes = [IsPlatformAdminOrSchoolAdmin]
    queryset = IDCardTemplate.objects.select_related("school", "parent_template").all()

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return IDCardTemplate.objects.none()
        user = self.request.user
        queryset = IDCardTemplate.objects.select_related("school", "parent_template")
        if _is_platform_admin(user):
            return queryset.all()
        if _is_school_admin(user):
            return queryset.filter(
                Q(school__admins=user) | Q(is_system=True, school__isnull=True)
            ).distinct()
        return IDCardTemplate.objects.none()

    def _requested_school_id(self, request):
        raw_value = request.query_params.get("school")
        if raw_value in (None, "") and isinstance(request.data, dict):
            raw_value = request.data.get("school_id") or request.data.get("school")
        if raw_value in (None, ""):
            return None
        try:
            return int(raw_value)
        except (TypeError, ValueError) as exc:
            raise serializers.ValidationError({"school": "School must be an integer id."}) from exc

    def _resolve_school(
        self,
        request,
        *,
        template: IDCardTemplate | None = None,
        school_id: int | None = None,
        required=True,
    ):
        user = request.user
        school = None
        if template is not None and template.school_id is not None:
            school = template.school
        else:
            if school_id is None:
                school_id = self._requested_school_id(request)
            if school_id is not None:
                school = School.objects.filter(pk=school_id).first()
                if school is None:
                    raise serializers.ValidationError({"school": "School not found."})
            elif _is_school_admin(user):
                administered = list(user.schools_administered.all()[:2])
                if len(administered) == 1:
                    school = administered[0]
        if school is None:
            if required:
                raise serializers.ValidationError({"school": "A school is required."})
            return None
        if _is_school_admin(user) and not school.admins.filter(pk=user.pk).exists():
            raise PermissionDenied("You do not administer this school.")
        return school

    def _ensure_can_modify(self, template: IDCardTemplate) -> None:
        if template.owner_scope == IDCardTemplate.OwnerScope.SYSTEM and not _is_platform_admin(
            self.request.user
        ):
            raise PermissionDenied(
                "System templates can only be changed by platform admins. Customize it instead."
            )

    def _effective_template(self, template: IDCardTemplate, school: School | None):
        if school is None or template.owner_scope != IDCardTemplate.OwnerScope.SYSTEM:
            return template
        override = template.child_templates.filter(school=school).order_by("id").first()
        return override or template

    @extend_schema(
        parameters=[OpenApiParameter("school", OpenApiTypes.INT, required=False)],
        responses=IDCardTemplateSerializer(many=True),
    )
    def list(self, request, *args, **kwargs):
        school = self._resolve_school(request, required=not _is_platform_admin(request.user))
        if school is None:
            templates = list(self.get_queryset())
            overrides = overrides_by_parent(templates)
        else:
            visible = list(visible_templates_for_school(school))
            overrides = overrides_by_parent(visible, school_id=school.pk)
            templates = effective_templates_for_school(school)
        serializer = self.get_serializer(
            templates,
            many=True,
            context={**self.get_serializer_context(), "overrides": overrides},
        )
        return Response(serializer.data, status=status.HTTP_200_OK)

    def perform_create(self, serializer):
        school = self._resolve_school(self.request)
        serializer.save(
            school=school,
            is_system=False,
            parent_template=None,
            created_by=self.request.user if self.request.user.is_authenticated else None,
        )

    def perform_update(self, serializer):
        self._ensure_can_modify(serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        self._ensure_can_modify(instance)
        instance.delete()

    @extend_schema(
        request=None,
        responses={201: IDCardTemplateSerializer, 200: IDCardTemplateSerializer},
    )
    @action(detail=True, methods=["post"], url_path="customize")
    def customize(self, request, pk=None):
        template = self.get_object()
        school = self._resolve_school(request)
        try:
            override, created = customize_template(template, school=school, actor=request.user)
        except DjangoValidationError as exc:
            raise _validation_error_from_django(exc) from exc
        return Response(
            self.get_serializer(override).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(request=None, responses=IDCardTemplateSerializer)
    @action(detail=True, methods=["post"], url_path="reset")
    def reset(self, request, pk=None):
        template = self.get_object()
        self._resolve_school(request, template=template)
        try:
            parent = reset_template_override(template)
        except DjangoValidationError as exc:
            raise _validation_error_from_django(exc) from exc
        return Response(self.get_serializer(parent).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={201: IDCardTemplateSerializer})
    @action(detail=True, methods=["post"], url_path="duplicate")
    def duplicate(self, request, pk=None):
        template = self.get_object()
        school = self._resolve_school(request, template=template)
        try:
            copy = duplicate_template(template, school=school, actor=request.user)
        except DjangoValidationError as exc:
            raise _validation_error_from_django(exc) from exc
        return Response(self.get_serializer(copy).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=CardPreviewRequestSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=True, methods=["post"], url_path="preview")
    def preview(self, request, pk=None):
        template = self.get_object()
        serializer = CardPreviewRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        school = self._resolve_school(
            request,
            template=template,
            school_id=serializer.validated_data.get("school_id"),
            required=False,
        )
        student_id = serializer.validated_data.get("student_id")
        if student_id is not None:
            student = (
                Student.objects.select_related("school")
                .filter(pk=student_id, school=school)
                .first()
            )
            if student is None:
                raise serializers.ValidationError({"student_id": "Student not found."})
            entity = entity_from_student(student, request=request)
        else:
            entity = sample_entity(school)

        print_settings = get_print_settings()
        try:
            scale = resolution_scale(
                print_settings.preview_dpi,
                print_settings.preview_dpi,
                float(serializer.validated_data["zoom"]),
            )
            rendered = render_card_face(
                template,
                entity.attributes,
                serializer.validated_data["side"],
                scale=scale,
                base_dpi=print_settings.preview_dpi,
            )
        except CardRenderError as exc:
            return Response({"detail": exc.detail}, status=exc.status_code)
        payload = {
            "entity_id": entity.id,
            "rendered": rendered,
            "html": render_card_fragment_html(
                rendered,
                include_guides=serializer.validated_data["include_guides"],
            ),
        }
        return Response(payload, status=status.HTTP_200_OK)

    def _print_inputs(self, request):
        template = self.get_object()
        serializer = PrintRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        school = self._resolve_school(
            request,
            template=template,
            school_id=serializer.validated_data.get("school_id"),
        )
        selection = build_selection(
            school,
            serializer.validated_data["student_ids"],
            request=request,
        )
        return (
            self._effective_template(template, school),
            selection,
            float(serializer.validated_data["zoom"]),
        )

    @extend_schema(request=PrintRequestSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=True, methods=["post"], url_path="print-layout")
    def print_layout(self, request, pk=None):
        try:
            template, selection, zoom = self._print_inputs(request)
            print_job = build_print_job(template, selection, zoom=zoom)
        except CardRenderError as exc:
            return Response({"detail": exc.detail}, status=exc.status_code)
        payload = {
            **print_job.sheet,
            "fonts": {
                "families": list(print_job.fonts.families),
                "failed": list(print_job.fonts.failed),
            },
        }
        return Response(payload, status=status.HTTP_200_OK)

    @extend_schema(
        request=PrintRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="Print-ready ID card sheets.",
            )
        },
    )
    @action(detail=True, methods=["post"], url_path="print")
    def print_cards(self, request, pk=None):
        try:
            template, selection, zoom = self._print_inputs(request)
            pdf_bytes, _ = generate_print_pdf(template, selection, zoom=zoom)
        except CardRenderError as exc:
            return Response({"detail": exc.detail}, status=exc.status_code)
        response = HttpResponse(pdf_bytes, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="id-cards-{template.pk}.pdf"'
        return response


class SystemIDCardTemplateViewSet(viewsets.ModelViewSet):
    serializer_class = IDCardTemplateSerializer
    permission_classes = [IsPlatformAdmin]
    queryset = IDCardTemplate.objects.filter(is_system=True, school__isnull=True)

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return IDCardTemplate.objects.none()
        return IDCardTemplate.objects.filter(is_system=True, school__isnull=True).order_by(
            "name", "id"
        )

    def perform_create(self, serializer):
        serializer.save(
            is_system=True,
            school=None,
            parent_template=None,
            created_by=self.request.user if self.request.user.is_authenticated else None,
        )
