import logging

from django.db import transaction, DatabaseError, IntegrityError
from django.db.models import F
from django.utils import timezone

from courses.exceptions import (
    NotFound, Forbidden, InvalidTransition, SlotFull, AlreadyBooked, StorageUnavailable,
)
from courses.services import get_student_courses
from .eligibility import eligible_courses
from .models import TimeSlot, TutoringSession

logger = logging.getLogger(__name__)


### ---------- 時段查詢 ----------

def list_available_slots(viewer, date=None, teacher_id=None):
    """
    老師: 只看自己的時段 (可依日期篩選，不限狀態)
    學生: 所有老師 status=available 的時段，指定日期或今天以後
    管理員: 全部時段，可依日期 / 老師篩選
    """
    try:
        queryset = TimeSlot.objects.select_related('teacher')
        if viewer.is_teacher:
            queryset = queryset.filter(teacher=viewer)
        else:
            if teacher_id:
                queryset = queryset.filter(teacher_id=teacher_id)
            if viewer.is_student:
                queryset = queryset.filter(status=TimeSlot.STATUS_AVAILABLE)

        if date:
            queryset = queryset.filter(date=date)
        elif viewer.is_student:
            queryset = queryset.filter(date__gte=timezone.localdate())

        return list(queryset.order_by('date', 'time'))
    except DatabaseError as e:
        logger.exception('查詢輔導時段失敗')
        raise StorageUnavailable() from e


def list_bookable_slots(student, date=None):
    """
    學生可預約的時段: 可預約狀態、仍有名額、符合課程 / 科目限制
    回傳 [(slot, 符合的課程), ...]
    """
    student_courses = get_student_courses(student)
    results = []
    for slot in list_available_slots(student, date=date):
        if not slot.is_bookable:
            logger.debug('時段 %s 已滿員 (%s/%s)', slot.pk, slot.current_students, slot.max_students)
            continue
        courses = eligible_courses(slot, student_courses)
        if not courses:
            continue
        results.append((slot, courses))
    return results


### ---------- 名額 ----------

def _reconcile_slot_status(slot_id):
    """依人數切換 available / full，cancelled 不變"""
    TimeSlot.objects.filter(
        pk=slot_id, status=TimeSlot.STATUS_AVAILABLE, current_students__gte=F('max_students')
    ).update(status=TimeSlot.STATUS_FULL)
    TimeSlot.objects.filter(
        pk=slot_id, status=TimeSlot.STATUS_FULL, current_students__lt=F('max_students')
    ).update(status=TimeSlot.STATUS_AVAILABLE)


def reserve_seat(slot_id):
    """
    條件式遞增: 只有在時段可預約且仍有名額時才 +1，
    判斷與寫入在同一個 UPDATE 完成，同時搶最後一個名額只有一個會成功
    """
    updated = TimeSlot.objects.filter(
        pk=slot_id,
        status=TimeSlot.STATUS_AVAILABLE,
        current_students__lt=F('max_students'),
    ).update(current_students=F('current_students') + 1, updated_at=timezone.now())
    if not updated:
        return False
    _reconcile_slot_status(slot_id)
    return True


def release_seat(slot_id):
    updated = TimeSlot.objects.filter(
        pk=slot_id, current_students__gt=0
    ).update(current_students=F('current_students') - 1, updated_at=timezone.now())
    if updated:
        _reconcile_slot_status(slot_id)
    return bool(updated)


### ---------- 時段維護 (老師) ----------

def get_slot(slot_id):
    try:
        return TimeSlot.objects.select_related('teacher').get(pk=slot_id)
    except (TimeSlot.DoesNotExist, ValueError, TypeError):
        raise NotFound('找不到輔導時段。')


def check_slot_owner(slot, user):
    if user.is_admin_role or slot.teacher_id == user.pk:
        return
    raise Forbidden('只能修改自己的輔導時段。')


def create_time_slot(teacher, data):
    slot = TimeSlot.objects.create(
        teacher=teacher,
        teacher_name=teacher.name,
        status=TimeSlot.STATUS_AVAILABLE,
        current_students=0,
        **data
    )
    logger.info('老師 %s 建立輔導時段 %s (%s %s)', teacher.pk, slot.pk, slot.date, slot.time)
    return slot


def update_time_slot(slot, user, data):
    """
    只寫入有變更的欄位，current_students 不會被舊資料覆蓋
    """
    check_slot_owner(slot, user)
    with transaction.atomic():
        for field, value in data.items():
            setattr(slot, field, value)
        if data:
            slot.save(update_fields=list(data) + ['updated_at'])
        _reconcile_slot_status(slot.pk)
    slot.refresh_from_db()
    logger.info('更新輔導時段 %s: %s', slot.pk, sorted(data))
    return slot


def cancel_time_slot(slot, user):
    check_slot_owner(slot, user)
    TimeSlot.objects.filter(pk=slot.pk).update(status=TimeSlot.STATUS_CANCELLED, updated_at=timezone.now())
    slot.refresh_from_db()
    logger.info('取消輔導時段 %s', slot.pk)
    return slot


### ---------- 預約 ----------

def book_slot(student, slot_id, course_id=None, notes=''):
    """
    學生預約時段:
    1. 時段存在
    2. 學生符合課程 / 科目限制 (指定 course_id 時該課程也要符合)
    3. 沒有重複預約
    4. 條件式遞增 current_students，成功才建立 pending 的 TutoringSession
    """
    slot = get_slot(slot_id)

    qualifying = eligible_courses(slot, get_student_courses(student))
    if not qualifying:
        raise Forbidden('您不符合此時段的預約資格。', code='not_eligible')

    course = None
    if course_id is not None:
        course = next((c for c in qualifying if str(c['id']) == str(course_id)), None)
        if course is None:
            raise Forbidden('所選課程不符合此時段的限制。', code='not_eligible')
    elif len(qualifying) == 1:
        course = qualifying[0]

    with transaction.atomic():
        if has_active_booking(student, slot):
            raise AlreadyBooked()

        if not reserve_seat(slot.pk):
            raise SlotFull()

        try:
            ### 同時送出的重複預約由唯一限制擋下，名額隨外層交易一起回滾
            with transaction.atomic():
                session = _create_session(student, slot, course, notes)
        except IntegrityError as e:
            raise AlreadyBooked() from e

    logger.info('學生 %s 預約時段 %s 成功 (session %s)', student.pk, slot.pk, session.pk)
    return session


def has_active_booking(student, slot):
    return TutoringSession.objects.filter(
        student=student, time_slot=slot, status__in=TutoringSession.SEAT_HOLDING_STATUSES
    ).exists()


def _create_session(student, slot, course, notes):
    return TutoringSession.objects.create(
        student=student,
        student_name=student.name,
        student_account=student.username,
        teacher=slot.teacher,
        teacher_name=slot.teacher_name,
        time_slot=slot,
        subject=course['subject'] if course else slot.subject_restriction,
        course_id=course['id'] if course else None,
        course_name=course['name'] if course else '',
        date=slot.date,
        time=slot.time,
        duration=slot.duration,
        status=TutoringSession.STATUS_PENDING,
        notes=notes,
    )


### ---------- 輔導紀錄 ----------

def list_sessions(user, status=None):
    queryset = TutoringSession.objects.select_related('time_slot', 'course')
    if user.is_teacher:
        queryset = queryset.filter(teacher=user)
    elif user.is_student:
        queryset = queryset.filter(student=user)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at')


def _check_session_permission(session, user, new_status=None):
    if user.is_admin_role:
        return
    if user.is_teacher and session.teacher_id == user.pk:
        return
    ### 學生只能取消自己的預約
    if user.is_student and session.student_id == user.pk and new_status == TutoringSession.STATUS_CANCELLED:
        return
    raise Forbidden('您沒有權限變更此輔導紀錄。')


def change_session_status(session_id, new_status, user):
    """
    pending -> confirmed / cancelled
    confirmed -> completed
    其他變更一律拒絕；取消時釋放時段名額
    """
    if new_status not in TutoringSession.ALLOWED_TRANSITIONS:
        raise InvalidTransition(f'未知的狀態: {new_status}')

    with transaction.atomic():
        session = TutoringSession.objects.select_for_update().filter(pk=session_id).first()
        if session is None:
            raise NotFound('找不到輔導紀錄。')
        _check_session_permission(session, user, new_status)

        if not session.can_transition_to(new_status):
            raise InvalidTransition(
                f'無法從 {session.get_status_display()} 變更為 {dict(TutoringSession.STATUS_CHOICES)[new_status]}。'
            )

        ### 以舊狀態為條件更新，避免兩個請求同時變更同一筆紀錄
        updated = TutoringSession.objects.filter(pk=session.pk, status=session.status).update(
            status=new_status, updated_at=timezone.now()
        )
        if not updated:
            raise InvalidTransition('輔導紀錄狀態已被變更，請重新整理。')

        if new_status == TutoringSession.STATUS_CANCELLED and session.time_slot_id:
            release_seat(session.time_slot_id)

    session.refresh_from_db()
    logger.info('輔導紀錄 %s 狀態變更為 %s (by %s)', session.pk, new_status, user.pk)
    return session


def delete_session(session_id, user):
    with transaction.atomic():
        session = TutoringSession.objects.select_for_update().filter(pk=session_id).first()
        if session is None:
            raise NotFound('找不到輔導紀錄。')
        if not (user.is_admin_role or (user.is_teacher and session.teacher_id == user.pk)):
            raise Forbidden('只能刪除自己的輔導紀錄。')
        if session.holds_seat:
            release_seat(session.time_slot_id)
        session.delete()
    logger.info('刪除輔導紀錄 %s (by %s)', session_id, user.pk)
