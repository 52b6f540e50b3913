from django.test import SimpleTestCase

from tutoring.eligibility import eligible_courses, is_eligible
from tutoring.models import TimeSlot


MATH = {'id': 1, 'name': '高一數學', 'code': 'M101', 'subject': '數學', 'grade': '高一'}
MATH_ADV = {'id': 2, 'name': '數學進階', 'code': 'M201', 'subject': '數學', 'grade': '高二'}
ENGLISH = {'id': 3, 'name': '英文閱讀', 'code': 'E101', 'subject': '英文', 'grade': '高一'}


class EligibilityTestCase(SimpleTestCase):
    """測試時段預約資格判斷 (不需資料庫)"""

    def test_course_restriction_without_matching_course(self):
        """有課程限制且學生沒有對應課程，不符合資格"""
        slot = {'course_restrictions': [99, 100]}
        self.assertFalse(is_eligible(slot, [MATH, ENGLISH]))
        self.assertEqual(eligible_courses(slot, [MATH, ENGLISH]), [])

    def test_course_restriction_with_matching_course(self):
        slot = {'course_restrictions': [3]}
        self.assertTrue(is_eligible(slot, [MATH, ENGLISH]))
        self.assertEqual(eligible_courses(slot, [MATH, ENGLISH]), [ENGLISH])

    def test_course_restriction_compares_ids_as_strings(self):
        """課程 id 可能以字串或數字保存"""
        slot = {'course_restrictions': ['1']}
        self.assertEqual(eligible_courses(slot, [MATH, ENGLISH]), [MATH])

    def test_subject_restriction_returns_exact_subset(self):
        """科目限制回傳該科目的所有課程"""
        slot = {'subject_restriction': '數學'}
        courses = [MATH, ENGLISH, MATH_ADV]
        self.assertTrue(is_eligible(slot, courses))
        self.assertEqual(eligible_courses(slot, courses), [MATH, MATH_ADV])

    def test_subject_restriction_without_matching_subject(self):
        slot = {'subject_restriction': '物理'}
        self.assertFalse(is_eligible(slot, [MATH, ENGLISH]))

    def test_course_restriction_takes_precedence(self):
        """兩種限制同時存在時以課程限制為準"""
        slot = {'course_restrictions': [3], 'subject_restriction': '數學'}
        self.assertEqual(eligible_courses(slot, [MATH, ENGLISH]), [ENGLISH])

    def test_no_restriction_returns_all_courses(self):
        courses = [MATH, ENGLISH]
        self.assertEqual(eligible_courses({}, courses), courses)
        self.assertEqual(eligible_courses({'course_restrictions': [], 'subject_restriction': ''}, courses), courses)

    def test_student_without_courses_is_never_eligible(self):
        self.assertFalse(is_eligible({}, []))
        self.assertFalse(is_eligible({'subject_restriction': '數學'}, None))

    def test_camel_case_document(self):
        """JSON 文件形式的時段 (courseRestrictions / subjectRestriction)"""
        self.assertEqual(eligible_courses({'courseRestrictions': [1]}, [MATH, ENGLISH]), [MATH])
        self.assertEqual(eligible_courses({'subjectRestriction': '英文'}, [MATH, ENGLISH]), [ENGLISH])

    def test_model_instance(self):
        slot = TimeSlot(subject_restriction='數學', course_restrictions=[])
        self.assertEqual(eligible_courses(slot, [MATH, ENGLISH]), [MATH])

        slot = TimeSlot(subject_restriction='', course_restrictions=[2])
        self.assertEqual(eligible_courses(slot, [MATH, MATH_ADV]), [MATH_ADV])
