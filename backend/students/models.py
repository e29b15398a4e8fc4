from django.db import models
from django.utils.translation import gettext_lazy as _

from schools.models import School


class Student(models.Model):
    class BloodGroup(models.TextChoices):
        A_POS = "A+", _("A+")
        A_NEG = "A-", _("A-")
        B_POS = "B+", _("B+")
        B_NEG = "B-", _("B-")
        AB_POS = "AB+", _("AB+")
        AB_NEG = "AB-", _("AB-")
        O_POS = "O+", _("O+")
        O_NEG = "O-", _("O-")

    school = models.ForeignKey(School, on_delete=models.PROTECT, related_name="students")
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)
    admission_number = models.CharField(max_length=40, blank=True)
    grade = models.CharField(max_length=100, blank=True)
    blood_group = models.CharField(max_length=3, choices=BloodGroup.choices, blank=True)
    photo = models.ImageField(upload_to="students/photos/", null=True, blank=True)
    is_active = models.BooleanField(default=True)  # type: ignore[call-arg]
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["last_name", "first_name", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["school", "admission_number"],
                condition=~models.Q(admission_number=""),
                name="student_unique_nonblank_admission_number",
            ),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def photo_url(self) -> str:
        if self.photo and getattr(self.photo, "name", ""):
            return self.photo.url
        return ""

    def save(self, *args, **kwargs):
        self.first_name = " ".join(str(self.first_name or "").split())
        self.last_name = " ".join(str(self.last_name or "").split())
        self.admission_number = str(self.admission_number or "").strip()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.full_name
