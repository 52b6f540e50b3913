from unittest import mock

from django.test import TestCase
from django.contrib.auth import get_user_model
from django.db import DatabaseError

from accounts.models import StudentProfile, DEFAULT_GRADE
from courses.exceptions import NotFound, CourseKeyConflict
from courses.models import Course, CourseStudentList, GradeBook
from courses import services

User = get_user_model()


class RosterSyncTestCase(TestCase):
    """測試學生加退選後的名單同步"""

    def setUp(self):
        self.student = User.objects.create_user(
            username='student001',
            password='password123',
            name='王小明',
            role='student',
            email='ming@example.com',
            student_id='S001',
            grade='高一'
        )
        StudentProfile.objects.create(user=self.student)

        self.math = Course.objects.create(name='高一數學', course_code='M101', subject='數學')
        self.english = Course.objects.create(name='英文閱讀', course_code='E101', subject='英文')
        self.physics = Course.objects.create(name='基礎物理', course_code='P101', subject='物理')

    def roster(self, course):
        roster = CourseStudentList.objects.filter(course_key=course.course_key).first()
        return roster.students if roster else []

    def test_add_courses(self):
        result = services.sync_enrollment(self.student.pk, [], [self.math.pk, self.english.pk])

        self.assertFalse(result['partial'])
        self.assertEqual(result['added'], [self.math.pk, self.english.pk])
        self.assertEqual(self.roster(self.math), [{
            'id': self.student.pk,
            'name': '王小明',
            'account': 'student001',
            'email': 'ming@example.com',
            'studentId': 'S001',
            'grade': '高一',
        }])

        self.student.refresh_from_db()
        self.assertEqual(self.student.enrolled_courses, [self.math.pk, self.english.pk])
        self.assertEqual(self.student.student_profile.enrolled_courses, [self.math.pk, self.english.pk])

    def test_sync_is_idempotent(self):
        """同樣的新舊課程呼叫兩次，名單不會重複"""
        services.sync_enrollment(self.student.pk, [], [self.math.pk])
        first = self.roster(self.math)

        result = services.sync_enrollment(self.student.pk, [], [self.math.pk])

        self.assertEqual(self.roster(self.math), first)
        self.assertEqual(len(self.roster(self.math)), 1)
        self.assertEqual(result['added'], [])
        self.assertEqual(result['failures'], [])

    def test_remove_course(self):
        services.sync_enrollment(self.student.pk, [], [self.math.pk, self.english.pk])

        result = services.sync_enrollment(self.student.pk, [self.math.pk, self.english.pk], [self.english.pk])

        self.assertEqual(result['removed'], [self.math.pk])
        self.assertEqual(self.roster(self.math), [])
        self.assertEqual(len(self.roster(self.english)), 1)
        self.student.refresh_from_db()
        self.assertEqual(self.student.enrolled_courses, [self.english.pk])

    def test_remove_from_missing_roster_is_noop(self):
        result = services.sync_enrollment(self.student.pk, [self.math.pk], [])

        self.assertFalse(result['partial'])
        self.assertEqual(result['removed'], [])

    def test_refresh_student_info(self):
        """學生資料變更時，已在名單中的副本一併更新"""
        services.sync_enrollment(self.student.pk, [], [self.math.pk])

        result = services.sync_enrollment(
            self.student.pk, [self.math.pk], [self.math.pk],
            student_info={'name': '王小明', 'account': 'student001', 'email': 'new@example.com',
                          'studentId': 'S001', 'grade': '高二'}
        )

        self.assertEqual(result['refreshed'], [self.math.pk])
        entry = self.roster(self.math)[0]
        self.assertEqual(entry['email'], 'new@example.com')
        self.assertEqual(entry['grade'], '高二')

    def test_default_grade_and_student_id(self):
        student = User.objects.create_user(
            username='student002', password='password123', name='李小華', role='student'
        )
        services.sync_enrollment(student.pk, [], [self.math.pk])

        entry = self.roster(self.math)[0]
        self.assertEqual(entry['grade'], DEFAULT_GRADE)
        self.assertEqual(entry['studentId'], str(student.pk))

    def test_unknown_course_is_isolated(self):
        """不存在的課程記為失敗，其他課程照常同步"""
        result = services.sync_enrollment(self.student.pk, [], [9999, self.math.pk])

        self.assertTrue(result['partial'])
        self.assertEqual([f['target'] for f in result['failures']], [9999])
        self.assertEqual(result['added'], [self.math.pk])
        self.assertEqual(len(self.roster(self.math)), 1)

    def test_storage_failure_is_isolated(self):
        original = services._add_roster_entry

        def flaky(course_key, student_id, info):
            if course_key == self.english.course_key:
                raise DatabaseError('disk I/O error')
            return original(course_key, student_id, info)

        with mock.patch('courses.services._add_roster_entry', side_effect=flaky):
            result = services.sync_enrollment(
                self.student.pk, [], [self.math.pk, self.english.pk, self.physics.pk]
            )

        self.assertTrue(result['partial'])
        self.assertEqual(result['failures'], [{'target': self.english.pk, 'error': 'disk I/O error'}])
        self.assertEqual(result['added'], [self.math.pk, self.physics.pk])
        # 失敗前後的寫入都保留
        self.assertEqual(len(self.roster(self.math)), 1)
        self.assertEqual(len(self.roster(self.physics)), 1)
        self.assertEqual(self.roster(self.english), [])

    def test_remove_student_from_course(self):
        services.sync_enrollment(self.student.pk, [], [self.math.pk, self.english.pk])

        services.remove_student_from_course(self.math, self.student.pk)

        self.assertEqual(self.roster(self.math), [])
        self.student.refresh_from_db()
        self.assertEqual(self.student.enrolled_courses, [self.english.pk])
        self.assertEqual(self.student.student_profile.enrolled_courses, [self.english.pk])

    def test_remove_student_without_roster(self):
        with self.assertRaises(NotFound):
            services.remove_student_from_course(self.physics, self.student.pk)

    def test_list_course_students(self):
        self.assertEqual(services.list_course_students(self.math.course_key), [])

        services.sync_enrollment(self.student.pk, [], [self.math.pk])
        students = services.list_course_students(self.math.course_key)
        self.assertEqual([s['name'] for s in students], ['王小明'])

    def test_get_student_courses(self):
        """依 enrolled_courses 順序，略過已不存在的課程"""
        self.student.enrolled_courses = [self.english.pk, 9999, self.math.pk]
        self.math.grades = ['高一', '高二']
        self.math.save()

        courses = services.get_student_courses(self.student)

        self.assertEqual([c['id'] for c in courses], [self.english.pk, self.math.pk])
        self.assertEqual(courses[1], {
            'id': self.math.pk, 'name': '高一數學', 'code': 'M101', 'subject': '數學', 'grade': '高一、高二'
        })


class TeacherSyncTestCase(TestCase):
    """測試老師授課清單同步"""

    def setUp(self):
        self.teacher_a = User.objects.create_user(
            username='teacher_a', password='password123', name='陳老師', role='teacher'
        )
        self.teacher_b = User.objects.create_user(
            username='teacher_b', password='password123', name='黃老師', role='teacher'
        )
        self.course, _ = services.create_course({
            'name': '高一數學', 'course_code': 'M101', 'subject': '數學', 'teacher_ids': [self.teacher_a.pk]
        })

    def test_create_course_adds_key_to_teacher(self):
        self.teacher_a.refresh_from_db()
        self.assertEqual(self.teacher_a.courses, ['高一數學(M101)'])
        self.assertEqual(self.course.teacher_ids, [self.teacher_a.pk])

    def test_reassign_from_a_to_b(self):
        result = services.sync_course_teachers(
            self.course, [self.teacher_b.pk], old_teacher_ids=[self.teacher_a.pk]
        )

        self.assertFalse(result['partial'])
        self.teacher_a.refresh_from_db()
        self.teacher_b.refresh_from_db()
        self.assertNotIn('高一數學(M101)', self.teacher_a.courses)
        self.assertIn('高一數學(M101)', self.teacher_b.courses)
        self.course.refresh_from_db()
        self.assertEqual(self.course.teacher_ids, [self.teacher_b.pk])

    def test_old_teachers_default_to_course(self):
        services.sync_course_teachers(self.course, [self.teacher_b.pk])

        self.teacher_a.refresh_from_db()
        self.assertEqual(self.teacher_a.courses, [])

    def test_no_duplicate_keys(self):
        services.sync_course_teachers(self.course, [self.teacher_a.pk, self.teacher_a.pk])
        services.sync_course_teachers(self.course, [self.teacher_a.pk])

        self.teacher_a.refresh_from_db()
        self.assertEqual(self.teacher_a.courses, ['高一數學(M101)'])

    def test_missing_teacher_recorded_as_failure(self):
        result = services.sync_course_teachers(self.course, [9999, self.teacher_b.pk])

        self.assertTrue(result['partial'])
        self.assertEqual([f['target'] for f in result['failures']], [9999])
        self.teacher_b.refresh_from_db()
        self.assertIn('高一數學(M101)', self.teacher_b.courses)
        self.course.refresh_from_db()
        self.assertEqual(self.course.teacher_ids, [self.teacher_b.pk])

    def test_student_is_not_a_teacher(self):
        student = User.objects.create_user(
            username='student001', password='password123', name='王小明', role='student'
        )
        result = services.sync_course_teachers(self.course, [student.pk])

        self.assertTrue(result['partial'])
        student.refresh_from_db()
        self.assertEqual(student.courses, [])
        self.course.refresh_from_db()
        self.assertEqual(self.course.teacher_ids, [])

    def test_remove_course_from_teachers(self):
        result = services.remove_course_from_teachers(self.course, [self.teacher_a.pk])

        self.assertEqual(result['removed'], [self.teacher_a.pk])
        self.teacher_a.refresh_from_db()
        self.assertEqual(self.teacher_a.courses, [])
        self.assertEqual(self.course.teacher_ids, [])


class CourseServiceTestCase(TestCase):

    def setUp(self):
        self.teacher = User.objects.create_user(
            username='teacher001', password='password123', name='陳老師', role='teacher'
        )
        self.student = User.objects.create_user(
            username='student001', password='password123', name='王小明', role='student', student_id='S001'
        )
        self.course, _ = services.create_course({
            'name': '高一數學', 'course_code': 'M101', 'subject': '數學', 'teacher_ids': [self.teacher.pk]
        })

    def test_duplicate_course_key(self):
        with self.assertRaises(CourseKeyConflict):
            services.create_course({'name': '高一數學', 'course_code': 'M101'})

    def test_rename_moves_keyed_documents(self):
        """改名後學生名單、成績、老師授課清單都改用新鍵值"""
        services.sync_enrollment(self.student.pk, [], [self.course.pk])
        services.save_grade_book(self.course, {'columns': ['期中考'], 'students': []})

        course, sync = services.update_course(self.course, {'name': '高一數學A', 'description': '進度較快'})

        self.assertIsNone(sync)
        self.assertEqual(course.course_key, '高一數學A(M101)')
        self.assertEqual(course.description, '進度較快')
        self.assertFalse(CourseStudentList.objects.filter(course_key='高一數學(M101)').exists())
        self.assertEqual(len(services.list_course_students('高一數學A(M101)')), 1)
        self.assertTrue(GradeBook.objects.filter(course_key='高一數學A(M101)').exists())
        self.teacher.refresh_from_db()
        self.assertEqual(self.teacher.courses, ['高一數學A(M101)'])

    def test_rename_to_existing_key(self):
        services.create_course({'name': '英文閱讀', 'course_code': 'E101'})

        with self.assertRaises(CourseKeyConflict):
            services.update_course(self.course, {'name': '英文閱讀', 'course_code': 'E101'})

    def test_archive(self):
        services.archive_course(self.course, True)
        self.assertTrue(self.course.archived)
        self.assertEqual(self.course.status, Course.STATUS_ARCHIVED)

        services.archive_course(self.course, False)
        self.assertFalse(self.course.archived)
        self.assertEqual(self.course.status, Course.STATUS_NOT_STARTED)

    def test_grade_book(self):
        services.save_grade_book(self.course, {
            'columns': ['期中考', '期末考'],
            'students': [
                {'studentId': 'S001', 'name': '王小明', '期中考': 88},
                {'name': '沒有學號'},
            ],
        })

        result = services.list_grade_books(['高一數學(M101)', '英文閱讀(E101)'])

        self.assertIsNone(result['英文閱讀(E101)'])
        grade_book = result['高一數學(M101)']
        self.assertEqual(grade_book['teacherIds'], [self.teacher.pk])
        self.assertEqual(grade_book['teacherNames'], ['陳老師'])
        self.assertEqual(grade_book['columns'], ['期中考', '期末考'])
        self.assertEqual(list(grade_book['grades']), ['S001'])
        self.assertEqual(len(grade_book['students']), 2)

    def test_delete_course(self):
        """刪除課程時，老師授課清單、學生選課、名單與成績一併清除"""
        other, _ = services.create_course({'name': '英文閱讀', 'course_code': 'E101'})
        StudentProfile.objects.create(user=self.student)
        services.sync_enrollment(self.student.pk, [], [self.course.pk, other.pk])
        services.save_grade_book(self.course, {'columns': ['期中考'], 'students': []})

        result = services.delete_course(self.course)

        self.assertFalse(result['partial'])
        self.assertEqual(result['removed'], [self.teacher.pk])
        self.assertEqual(result['students'], [self.student.pk])
        self.assertFalse(Course.objects.filter(name='高一數學', course_code='M101').exists())
        self.assertFalse(CourseStudentList.objects.filter(course_key='高一數學(M101)').exists())
        self.assertFalse(GradeBook.objects.filter(course_key='高一數學(M101)').exists())
        self.assertTrue(CourseStudentList.objects.filter(course_key='英文閱讀(E101)').exists())

        self.teacher.refresh_from_db()
        self.student.refresh_from_db()
        self.assertEqual(self.teacher.courses, [])
        self.assertEqual(self.student.enrolled_courses, [other.pk])
        self.assertEqual(self.student.student_profile.enrolled_courses, [other.pk])

    def test_delete_course_with_missing_teacher(self):
        """已不存在的老師記錄為失敗，課程仍會刪除"""
        Course.objects.filter(pk=self.course.pk).update(teacher_ids=[9999, self.teacher.pk])
        self.course.refresh_from_db()

        result = services.delete_course(self.course)

        self.assertTrue(result['partial'])
        self.assertEqual([f['target'] for f in result['failures']], [9999])
        self.assertFalse(Course.objects.filter(name='高一數學', course_code='M101').exists())
        self.teacher.refresh_from_db()
        self.assertEqual(self.teacher.courses, [])


class GradeDistributionTestCase(TestCase):
    """測試成績五標與分數分布"""

    def setUp(self):
        self.course = Course.objects.create(name='高一數學', course_code='M101', subject='數學')
        scores = [95, 88, 82, 76, 70, 65, 58, 52, 45, 30]
        students = [
            {'studentId': f'S{i:03d}', 'regularScores': {'1': score, '2': 100}}
            for i, score in enumerate(scores)
        ]
        students.append({'studentId': 'S100', 'regularScores': {'1': '缺考'}})
        students.append({'studentId': 'S101'})
        services.save_grade_book(self.course, {'columns': [], 'students': students})

    def test_percentile_levels(self):
        result = services.grade_distribution('高一數學(M101)', '1')

        self.assertEqual(result['statistics'], {
            '平均': 66.1,
            '頂標': 88,
            '前標': 82,
            '均標': 65,
            '後標': 52,
            '底標': 45,
        })

    def test_score_distribution(self):
        result = services.grade_distribution('高一數學(M101)', 1)

        self.assertEqual(result['distribution'], [
            {'range': '90-100', 'count': 1},
            {'range': '80-89', 'count': 2},
            {'range': '70-79', 'count': 2},
            {'range': '60-69', 'count': 1},
            {'range': '50-59', 'count': 2},
            {'range': '<50', 'count': 2},
        ])

    def test_column_without_scores(self):
        result = services.grade_distribution('高一數學(M101)', '3')

        self.assertEqual(result['distribution'], [])
        self.assertEqual(result['statistics'], {
            '平均': 0, '頂標': 0, '前標': 0, '均標': 0, '後標': 0, '底標': 0,
        })

    def test_single_score(self):
        levels = services.percentile_levels([73])

        self.assertEqual(levels['平均'], 73)
        self.assertEqual(levels['頂標'], 73)
        self.assertEqual(levels['底標'], 73)

    def test_missing_grade_book(self):
        with self.assertRaises(NotFound):
            services.grade_distribution('英文閱讀(E101)', '1')
