from datetime import time, timedelta
import random

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from accounts.models import StudentProfile
from courses.models import Course, CourseStudentList, GradeBook
from courses import services
from courses.exceptions import NotFound, Forbidden, SlotFull, AlreadyBooked
from tutoring.models import TimeSlot, TutoringSession, GROUP_SLOT_CAPACITY
from tutoring import services as tutoring_services

User = get_user_model()


class Command(BaseCommand):
    help = '建立測試資料（使用者、課程、學生名單、輔導時段）'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='清除現有資料後再建立',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('清除現有資料...')
            TutoringSession.objects.all().delete()
            TimeSlot.objects.all().delete()
            GradeBook.objects.all().delete()
            CourseStudentList.objects.all().delete()
            Course.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()

        with transaction.atomic():
            # 建立使用者
            self.stdout.write('建立使用者...')
            users = self.create_users()

            # 建立課程並指派授課老師
            self.stdout.write('建立課程...')
            courses = self.create_courses(users['teachers'])

            # 學生選課，同步學生名單
            self.stdout.write('建立選課資料...')
            self.create_sample_enrollments(users['students'], courses)

            # 建立輔導時段與預約
            self.stdout.write('建立輔導時段...')
            slots = self.create_time_slots(users['teachers'], courses)
            self.create_sample_bookings(users['students'], slots)

        self.stdout.write(self.style.SUCCESS('測試資料建立完成！'))

    def create_users(self):
        users = {
            'students': [],
            'teachers': [],
            'admin': None
        }

        # 建立管理員
        admin, created = User.objects.get_or_create(
            username='admin',
            defaults={
                'name': '系統管理員',
                'role': 'admin',
                'email': 'admin@example.com',
                'is_staff': True,
                'is_superuser': True,
            }
        )
        if created:
            admin.set_password('admin123')
            admin.save()
            self.stdout.write(f'  建立管理員: {admin.username}')
        users['admin'] = admin

        teacher_data = [
            {'username': 'teacher001', 'name': '陳老師', 'email': 'chen@example.com'},
            {'username': 'teacher002', 'name': '林老師', 'email': 'lin@example.com'},
            {'username': 'teacher003', 'name': '王老師', 'email': 'wang@example.com'},
        ]

        for data in teacher_data:
            teacher, created = User.objects.get_or_create(
                username=data['username'],
                defaults={
                    'name': data['name'],
                    'role': 'teacher',
                    'email': data['email'],
                }
            )
            if created:
                teacher.set_password('password123')
                teacher.save()
                self.stdout.write(f'  建立老師: {teacher.name}')
            users['teachers'].append(teacher)

        grades = ['高一', '高二', '高三']
        for i in range(1, 21):  # 建立 20 個學生
            username = f'student{i:03d}'
            student, created = User.objects.get_or_create(
                username=username,
                defaults={
                    'name': f'學生{i}',
                    'role': 'student',
                    'email': f'{username}@example.com',
                    'student_id': f'S{i:04d}',
                    'grade': grades[i % len(grades)],
                }
            )
            if created:
                student.set_password('password123')
                student.save()
                StudentProfile.objects.create(user=student)
                self.stdout.write(f'  建立學生: {student.name}')
            users['students'].append(student)

        return users

    def create_courses(self, teachers):
        courses_data = [
            {'name': '高一數學', 'course_code': 'M101', 'subject': '數學', 'grades': ['高一'],
             'description': '多項式、指數與對數、數列與級數'},
            {'name': '高二數學', 'course_code': 'M201', 'subject': '數學', 'grades': ['高二'],
             'description': '三角函數、向量、空間中的平面與直線'},
            {'name': '英文閱讀', 'course_code': 'E101', 'subject': '英文', 'grades': ['高一', '高二'],
             'description': '文章結構分析與閱讀策略'},
            {'name': '英文寫作', 'course_code': 'E201', 'subject': '英文', 'grades': ['高二', '高三'],
             'description': '段落寫作、看圖作文、翻譯練習'},
            {'name': '基礎物理', 'course_code': 'P101', 'subject': '物理', 'grades': ['高一'],
             'description': '運動學、牛頓運動定律、能量'},
            {'name': '基礎化學', 'course_code': 'C101', 'subject': '化學', 'grades': ['高一'],
             'description': '物質組成、原子結構、化學反應'},
        ]

        courses = []
        for index, data in enumerate(courses_data):
            course = Course.objects.filter(name=data['name'], course_code=data['course_code']).first()
            if course is None:
                data = dict(data, status=Course.STATUS_ENROLLING)
                teacher = teachers[index % len(teachers)]
                course, _ = services.create_course(dict(data, teacher_ids=[teacher.pk]))
                self.stdout.write(f'  建立課程: {course.course_key} 授課: {teacher.name}')
            courses.append(course)

        return courses

    def create_sample_enrollments(self, students, courses):
        # 前 15 個學生各選 1-3 門課
        for student in students[:15]:
            if student.enrolled_courses:
                continue
            selected = random.sample(courses, random.randint(1, 3))
            result = services.sync_enrollment(student.pk, [], [course.pk for course in selected])
            names = '、'.join(course.name for course in selected)
            self.stdout.write(f'  {student.name} 選修 {names}')
            if result['partial']:
                self.stdout.write(self.style.WARNING(f'    名單同步部分失敗: {result["failures"]}'))

    def create_time_slots(self, teachers, courses):
        start = timezone.localdate() + timedelta(days=1)
        hours = [time(9, 0), time(13, 0), time(15, 0), time(19, 0)]
        subjects = sorted({course.subject for course in courses})

        slots = []
        for teacher in teachers:
            if TimeSlot.objects.filter(teacher=teacher).exists():
                slots.extend(TimeSlot.objects.filter(teacher=teacher, status=TimeSlot.STATUS_AVAILABLE))
                continue
            taught = [course for course in courses if teacher.pk in course.teacher_ids]
            for day in range(5):
                data = {
                    'date': start + timedelta(days=day),
                    'time': random.choice(hours),
                    'duration': 60,
                }
                kind = random.choice(['subject', 'course', 'group'])
                if kind == 'group':
                    data.update({
                        'tutoring_type': TimeSlot.TYPE_GROUP,
                        'max_students': GROUP_SLOT_CAPACITY,
                        'tutoring_method': TimeSlot.METHOD_PHYSICAL,
                        'location': '自習教室 A',
                    })
                elif kind == 'course' and taught:
                    data['course_restrictions'] = [random.choice(taught).pk]
                else:
                    data['subject_restriction'] = random.choice(subjects)

                slot = tutoring_services.create_time_slot(teacher, data)
                self.stdout.write(f'  {teacher.name}: {slot.date} {slot.time} ({slot.get_tutoring_type_display()})')
                slots.append(slot)

        return slots

    def create_sample_bookings(self, students, slots):
        for student in students[:10]:
            # 選課是以 update 寫入，重新讀取 enrolled_courses
            student.refresh_from_db()
            for slot in random.sample(slots, min(len(slots), 3)):
                try:
                    session = tutoring_services.book_slot(student, slot.pk)
                except (NotFound, Forbidden, SlotFull, AlreadyBooked):
                    # 不符合資格或已額滿的時段略過
                    continue
                self.stdout.write(f'  {student.name} 預約 {session.teacher_name} {session.date}')
