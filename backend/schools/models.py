from django.conf import settings
from django.db import models


class School(models.Model):
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=80, unique=True)
    city = models.CharField(max_length=255, blank=True)
    logo = models.ImageField(upload_to="schools/logos/", null=True, blank=True)
    admins = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="schools_administered",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    @property
    def logo_url(self) -> str:
        if self.logo and getattr(self.logo, "name", ""):
            return self.logo.url
        return ""

    def __str__(self):
        return self.name
