from django.contrib import admin

from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = (
        "first_name",
        "last_name",
        "admission_number",
        "grade",
        "school",
        "is_active",
        "has_photo",
    )
    list_filter = ("is_active", "school", "blood_group")
    search_fields = ("first_name", "last_name", "admission_number")

    @admin.display(boolean=True, description="Photo")
    def has_photo(self, obj: Student) -> bool:
        return bool(obj.photo)
