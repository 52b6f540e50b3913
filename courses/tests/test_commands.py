from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.contrib.auth import get_user_model

from courses.models import Course, CourseStudentList
from tutoring.models import TimeSlot

User = get_user_model()


class SeedDataCommandTestCase(TestCase):

    def test_seed_data(self):
        out = StringIO()
        call_command('seed_data', stdout=out)

        self.assertIn('測試資料建立完成', out.getvalue())
        self.assertEqual(User.objects.filter(role='teacher').count(), 3)
        self.assertEqual(User.objects.filter(role='student').count(), 20)
        self.assertEqual(Course.objects.count(), 6)
        self.assertEqual(TimeSlot.objects.count(), 15)

        # 名單與學生的 enrolled_courses 一致
        for student in User.objects.filter(role='student'):
            for course in Course.objects.filter(pk__in=student.enrolled_courses):
                roster = CourseStudentList.objects.get(course_key=course.course_key)
                self.assertIsNotNone(roster.find_student(student.pk))

        # 每位老師的授課清單都有課程鍵值
        for teacher in User.objects.filter(role='teacher'):
            self.assertTrue(teacher.courses)

    def test_seed_data_twice(self):
        call_command('seed_data', stdout=StringIO())
        call_command('seed_data', stdout=StringIO())

        self.assertEqual(Course.objects.count(), 6)
        self.assertEqual(TimeSlot.objects.count(), 15)
