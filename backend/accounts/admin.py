from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class CustomUserAdmin(UserAdmin):
    fieldsets = UserAdmin.fieldsets + (
        (
            "School",
            {
                "fields": ("role",)
            },
        ),
    )
    list_display = (
        "username",
        "email",
        "role",
        "is_staff",
    )
    list_filter = UserAdmin.list_filter + ("role",)
