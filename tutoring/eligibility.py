"""
輔導時段預約資格判斷

時段可設定課程限制 (course_restrictions) 或科目限制 (subject_restriction)，
兩者同時存在時以課程限制為準。沒有選課的學生不符合任何時段。

slot 與 student course 都可以是 model 物件或 dict (JSON 文件)。
"""
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def _get(obj, name, alias=None):
    if isinstance(obj, Mapping):
        if name in obj:
            return obj[name]
        return obj.get(alias) if alias else None
    return getattr(obj, name, None)


def _course_restrictions(slot):
    restrictions = _get(slot, 'course_restrictions', 'courseRestrictions') or []
    return {str(course_id) for course_id in restrictions}


def _subject_restriction(slot):
    return _get(slot, 'subject_restriction', 'subjectRestriction') or ''


def eligible_courses(slot, student_courses):
    """學生課程中符合時段限制的課程；沒有限制時回傳全部課程"""
    student_courses = list(student_courses or [])
    if not student_courses:
        return []

    restrictions = _course_restrictions(slot)
    if restrictions:
        matched = [c for c in student_courses if str(_get(c, 'id')) in restrictions]
        logger.debug('課程限制 %s，符合 %d 門', sorted(restrictions), len(matched))
        return matched

    subject = _subject_restriction(slot)
    if subject:
        matched = [c for c in student_courses if _get(c, 'subject') == subject]
        logger.debug('科目限制 %s，符合 %d 門', subject, len(matched))
        return matched

    return student_courses


def is_eligible(slot, student_courses):
    return bool(eligible_courses(slot, student_courses))
