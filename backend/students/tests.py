from django.db import IntegrityError
from django.test import TestCase

from schools.models import School

from .models import Student


class StudentModelTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Willow Creek", slug="willow-creek")

    def test_names_and_admission_number_are_normalized(self):
        student = Student.objects.create(
            school=self.school,
            first_name="  Mary   Ann ",
            last_name=" Smith ",
            admission_number=" WC-10 ",
        )
        self.assertEqual(student.first_name, "Mary Ann")
        self.assertEqual(student.full_name, "Mary Ann Smith")
        self.assertEqual(student.admission_number, "WC-10")
        self.assertEqual(student.photo_url, "")

    def test_blank_admission_numbers_may_repeat(self):
        Student.objects.create(school=self.school, first_name="A", last_name="One")
        Student.objects.create(school=self.school, first_name="B", last_name="Two")
        self.assertEqual(Student.objects.filter(school=self.school).count(), 2)

    def test_admission_number_is_unique_per_school(self):
        Student.objects.create(
            school=self.school,
            first_name="A",
            last_name="One",
            admission_number="WC-1",
        )
        with self.assertRaises(IntegrityError):
            Student.objects.create(
                school=self.school,
                first_name="B",
                last_name="Two",
                admission_number="WC-1",
            )
