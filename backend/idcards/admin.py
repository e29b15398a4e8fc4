from django.contrib import admin

from .models import IDCardTemplate


@admin.register(IDCardTemplate)
class IDCardTemplateAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "school",
        "is_system",
        "parent_template",
        "orientation",
        "width",
        "height",
        "unit",
        "bleed",
        "updated_at",
    )
    list_filter = ("is_system", "orientation", "unit", "school")
    search_fields = ("name", "description", "school__name")
    raw_id_fields = ("parent_template", "created_by")
