import logging

from django.db import transaction, DatabaseError

from accounts.models import User, StudentProfile, DEFAULT_GRADE
from .exceptions import NotFound, CourseKeyConflict, StorageUnavailable
from .models import Course, CourseStudentList, GradeBook, build_course_key

logger = logging.getLogger(__name__)

ROSTER_FIELDS = ('name', 'account', 'email', 'studentId', 'grade')


def _unique(values):
    """去除重複但保留順序"""
    seen = []
    for value in values or []:
        if value not in seen:
            seen.append(value)
    return seen


def _run_isolated(result, bucket, target, func):
    """
    單一文件的更新失敗只記錄，不中斷其他文件的更新
    已完成的寫入不會回復，失敗清單回傳給呼叫端
    """
    try:
        with transaction.atomic():
            changed = func()
    except NotFound as e:
        logger.warning('同步略過 %s: %s', target, e.detail)
        result['failures'].append({'target': target, 'error': str(e.detail)})
        return
    except DatabaseError as e:
        logger.exception('同步失敗 %s', target)
        result['failures'].append({'target': target, 'error': str(e)})
        return
    if changed and bucket:
        result[bucket].append(target)


def get_course(course_id):
    try:
        return Course.objects.get(pk=course_id)
    except (Course.DoesNotExist, ValueError, TypeError):
        raise NotFound('找不到課程。')


def get_course_by_key(name, code):
    try:
        return Course.objects.get(name=name, course_code=code)
    except Course.DoesNotExist:
        raise NotFound(f'找不到課程 {build_course_key(name, code)}。')


def get_student_courses(student):
    """學生的 enrolled_courses 與課程資料取交集，順序依 enrolled_courses"""
    course_ids = _unique(student.enrolled_courses)
    if not course_ids:
        return []
    courses = {course.pk: course for course in Course.objects.filter(pk__in=course_ids)}
    return [courses[course_id].as_student_course() for course_id in course_ids if course_id in courses]


### ---------- 學生名單同步 ----------

def build_roster_entry(student_id, info):
    return {
        'id': student_id,
        'name': info.get('name', ''),
        'account': info.get('account', ''),
        'email': info.get('email', ''),
        'studentId': info.get('studentId') or str(student_id),
        'grade': info.get('grade') or DEFAULT_GRADE,
    }


def resolve_student_info(student_id, student_info=None):
    if student_info:
        return student_info
    user = User.objects.filter(pk=student_id).first()
    if user is None:
        return {'id': student_id}
    return user.roster_info()


def _add_roster_entry(course_key, student_id, info):
    roster, _ = CourseStudentList.objects.select_for_update().get_or_create(course_key=course_key)
    if roster.find_student(student_id) is not None:
        return False
    roster.students.append(build_roster_entry(student_id, info))
    roster.save(update_fields=['students', 'updated_at'])
    return True


def _remove_roster_entry(course_key, student_id):
    roster = CourseStudentList.objects.select_for_update().filter(course_key=course_key).first()
    if roster is None:
        return False
    remaining = [entry for entry in roster.students if entry.get('id') != student_id]
    if len(remaining) == len(roster.students):
        return False
    roster.students = remaining
    roster.save(update_fields=['students', 'updated_at'])
    return True


def _refresh_roster_entry(course_key, student_id, info):
    roster = CourseStudentList.objects.select_for_update().filter(course_key=course_key).first()
    if roster is None:
        return False
    index = roster.find_student(student_id)
    if index is None:
        return False
    fresh = build_roster_entry(student_id, info)
    current = roster.students[index]
    if all(current.get(field) == fresh[field] for field in ROSTER_FIELDS):
        return False
    roster.students[index] = {**current, **{field: fresh[field] for field in ROSTER_FIELDS}}
    roster.save(update_fields=['students', 'updated_at'])
    return True


def _write_enrolled_courses(student_id, course_ids):
    updated = User.objects.filter(pk=student_id).update(enrolled_courses=course_ids)
    StudentProfile.objects.filter(user_id=student_id).update(enrolled_courses=course_ids)
    return bool(updated)


def sync_enrollment(student_id, old_course_ids, new_course_ids, student_info=None):
    """
    學生加退選後同步各處的名單資料:
    1. 加選課程的學生名單加入學生 (已存在則略過)
    2. 退選課程的學生名單移除學生
    3. 新舊課程中仍有此學生的名單，更新學生資料副本
    4. users / student_data 的 enrolled_courses 改為新清單

    重複呼叫結果相同；單一課程失敗不影響其他課程，失敗記錄在 failures
    """
    old_ids = _unique(old_course_ids)
    new_ids = _unique(new_course_ids)
    added = [course_id for course_id in new_ids if course_id not in old_ids]
    removed = [course_id for course_id in old_ids if course_id not in new_ids]

    info = resolve_student_info(student_id, student_info)
    course_keys = {
        course.pk: course.course_key
        for course in Course.objects.filter(pk__in=_unique(old_ids + new_ids))
    }

    def course_key_for(course_id):
        if course_id not in course_keys:
            raise NotFound(f'找不到課程 {course_id}。')
        return course_keys[course_id]

    result = {'added': [], 'removed': [], 'refreshed': [], 'failures': []}

    for course_id in added:
        _run_isolated(result, 'added', course_id,
                      lambda: _add_roster_entry(course_key_for(course_id), student_id, info))

    for course_id in removed:
        _run_isolated(result, 'removed', course_id,
                      lambda: _remove_roster_entry(course_key_for(course_id), student_id))

    for course_id in _unique(old_ids + new_ids):
        if course_id in course_keys:
            _run_isolated(result, 'refreshed', course_id,
                          lambda: _refresh_roster_entry(course_keys[course_id], student_id, info))

    _run_isolated(result, None, 'enrolled_courses',
                  lambda: _write_enrolled_courses(student_id, new_ids))

    result['partial'] = bool(result['failures'])
    if result['partial']:
        logger.warning('學生 %s 名單同步部分失敗: %s', student_id, result['failures'])
    else:
        logger.info('學生 %s 名單同步完成: 加選 %s 退選 %s', student_id, added, removed)
    return result


def list_course_students(course_key):
    try:
        roster = CourseStudentList.objects.filter(course_key=course_key).first()
    except DatabaseError as e:
        logger.exception('讀取學生名單失敗 %s', course_key)
        raise StorageUnavailable() from e
    if roster is None:
        logger.info('找不到學生名單文件: %s', course_key)
        return []
    return roster.students


def remove_student_from_course(course, student_id):
    """從名單移除學生，同時更新 users / student_data 的 enrolled_courses"""
    with transaction.atomic():
        roster = CourseStudentList.objects.select_for_update().filter(course_key=course.course_key).first()
        if roster is None:
            raise NotFound('找不到課程學生名單。')
        roster.students = [entry for entry in roster.students if entry.get('id') != student_id]
        roster.save(update_fields=['students', 'updated_at'])

        for model in (User, StudentProfile):
            lookup = {'pk': student_id} if model is User else {'user_id': student_id}
            document = model.objects.select_for_update().filter(**lookup).first()
            if document is None:
                logger.info('%s 不存在: %s', model.__name__, student_id)
                continue
            document.enrolled_courses = [c for c in document.enrolled_courses if c != course.pk]
            document.save(update_fields=['enrolled_courses', 'updated_at'])

    logger.info('已將學生 %s 從 %s 移除', student_id, course.course_key)


### ---------- 老師授課清單同步 ----------

def _add_teacher_course(teacher_id, course_key):
    teacher = User.objects.select_for_update().filter(pk=teacher_id, role=User.ROLE_TEACHER).first()
    if teacher is None:
        raise NotFound(f'找不到老師 {teacher_id}。')
    if course_key in teacher.courses:
        return False
    teacher.courses = teacher.courses + [course_key]
    teacher.save(update_fields=['courses', 'updated_at'])
    return True


def _remove_teacher_course(teacher_id, course_key):
    teacher = User.objects.select_for_update().filter(pk=teacher_id).first()
    if teacher is None:
        raise NotFound(f'找不到老師 {teacher_id}。')
    if course_key not in teacher.courses:
        return False
    teacher.courses = [key for key in teacher.courses if key != course_key]
    teacher.save(update_fields=['courses', 'updated_at'])
    return True


def sync_course_teachers(course, teacher_ids, old_teacher_ids=None):
    """
    課程授課老師變更:
    被移除的老師從 courses 移除課程鍵值，新老師加入課程鍵值 (不重複)
    """
    teacher_ids = _unique(teacher_ids)
    if old_teacher_ids is None:
        old_teacher_ids = course.teacher_ids
    course_key = course.course_key
    result = {'added': [], 'removed': [], 'failures': []}

    for teacher_id in _unique(old_teacher_ids):
        if teacher_id not in teacher_ids:
            _run_isolated(result, 'removed', teacher_id,
                          lambda: _remove_teacher_course(teacher_id, course_key))

    for teacher_id in teacher_ids:
        _run_isolated(result, 'added', teacher_id,
                      lambda: _add_teacher_course(teacher_id, course_key))

    ### 找不到或不是老師的 id 不寫回課程
    failed = {failure['target'] for failure in result['failures']}
    course.teacher_ids = [teacher_id for teacher_id in teacher_ids if teacher_id not in failed]
    course.save(update_fields=['teacher_ids', 'updated_at'])

    result['partial'] = bool(result['failures'])
    logger.info('課程 %s 授課老師同步: 加入 %s 移除 %s', course_key, result['added'], result['removed'])
    return result


def remove_course_from_teachers(course, teacher_ids):
    teacher_ids = _unique(teacher_ids)
    result = {'removed': [], 'failures': []}
    for teacher_id in teacher_ids:
        _run_isolated(result, 'removed', teacher_id,
                      lambda: _remove_teacher_course(teacher_id, course.course_key))

    course.teacher_ids = [t for t in course.teacher_ids if t not in teacher_ids]
    course.save(update_fields=['teacher_ids', 'updated_at'])
    result['partial'] = bool(result['failures'])
    return result


### ---------- 課程 ----------

def create_course(data):
    teacher_ids = _unique(data.pop('teacher_ids', []))
    if Course.objects.filter(name=data['name'], course_code=data['course_code']).exists():
        raise CourseKeyConflict()
    course = Course.objects.create(**data)
    logger.info('建立課程 %s', course.course_key)
    sync = sync_course_teachers(course, teacher_ids, old_teacher_ids=[])
    return course, sync


def rekey_course(course, new_name, new_code):
    """
    課程改名或改代碼時，把以課程鍵值為 id 的文件一起搬到新鍵值:
    學生名單、成績、老師授課清單
    """
    old_key = course.course_key
    new_key = build_course_key(new_name, new_code)
    if old_key == new_key:
        return
    if Course.objects.filter(name=new_name, course_code=new_code).exclude(pk=course.pk).exists():
        raise CourseKeyConflict()

    with transaction.atomic():
        CourseStudentList.objects.filter(course_key=old_key).update(course_key=new_key)
        GradeBook.objects.filter(course_key=old_key).update(course_key=new_key)
        for teacher in User.objects.select_for_update().filter(role=User.ROLE_TEACHER):
            if old_key in teacher.courses:
                teacher.courses = [new_key if key == old_key else key for key in teacher.courses]
                teacher.save(update_fields=['courses', 'updated_at'])
        course.name = new_name
        course.course_code = new_code
        course.save(update_fields=['name', 'course_code', 'updated_at'])
    logger.info('課程鍵值變更 %s -> %s', old_key, new_key)


def update_course(course, data):
    new_name = data.pop('name', course.name)
    new_code = data.pop('course_code', course.course_code)
    teacher_ids = data.pop('teacher_ids', None)

    with transaction.atomic():
        rekey_course(course, new_name, new_code)
        for field, value in data.items():
            setattr(course, field, value)
        if data:
            course.save(update_fields=list(data) + ['updated_at'])

    sync = None
    if teacher_ids is not None:
        sync = sync_course_teachers(course, teacher_ids)
    return course, sync


def archive_course(course, archived):
    course.archived = archived
    course.status = Course.STATUS_ARCHIVED if archived else Course.STATUS_NOT_STARTED
    course.save(update_fields=['archived', 'status', 'updated_at'])
    logger.info('課程 %s 封存狀態: %s', course.course_key, archived)
    return course


def _drop_enrolled_course(student_id, course_id):
    student = User.objects.select_for_update().filter(pk=student_id).first()
    if student is None:
        raise NotFound(f'找不到學生 {student_id}。')
    if course_id not in student.enrolled_courses:
        return False
    return _write_enrolled_courses(student_id, [c for c in student.enrolled_courses if c != course_id])


def delete_course(course):
    """
    刪除課程:
    1. 授課老師的 courses 移除課程鍵值 (個別老師失敗只記錄)
    2. 選修學生的 enrolled_courses 移除課程
    3. 刪除學生名單、成績文件與課程本身
    """
    course_id = course.pk
    course_key = course.course_key

    result = remove_course_from_teachers(course, course.teacher_ids)
    result['students'] = []

    ### enrolled_courses 是 JSON 陣列，在 Python 判斷
    for student in User.objects.filter(role=User.ROLE_STUDENT).only('pk', 'enrolled_courses'):
        if course_id in student.enrolled_courses:
            _run_isolated(result, 'students', student.pk,
                          lambda: _drop_enrolled_course(student.pk, course_id))

    with transaction.atomic():
        CourseStudentList.objects.filter(course_key=course_key).delete()
        GradeBook.objects.filter(course_key=course_key).delete()
        course.delete()

    result['partial'] = bool(result['failures'])
    logger.info('刪除課程 %s: 老師 %s 學生 %s', course_key, result['removed'], result['students'])
    return result


### ---------- 成績 ----------

def save_grade_book(course, grade_data):
    """students 陣列依學號轉成 grades 物件，方便以學號查詢"""
    students = grade_data.get('students') or []
    grades = {}
    for row in students:
        if row.get('studentId'):
            grades[str(row['studentId'])] = row

    grade_book, _ = GradeBook.objects.update_or_create(
        course_key=course.course_key,
        defaults={
            'teacher_ids': grade_data.get('teacherIds', course.teacher_ids),
            'columns': grade_data.get('columns', []),
            'students': students,
            'grades': grades,
        },
    )
    logger.info('儲存成績 %s (%d 位學生)', course.course_key, len(students))
    return grade_book


def list_grade_books(course_keys):
    grade_books = {gb.course_key: gb for gb in GradeBook.objects.filter(course_key__in=course_keys)}
    teacher_ids = {t for gb in grade_books.values() for t in gb.teacher_ids}
    teacher_names = {
        teacher.pk: teacher.name or teacher.username
        for teacher in User.objects.filter(pk__in=teacher_ids)
    }

    results = {}
    for key in course_keys:
        grade_book = grade_books.get(key)
        if grade_book is None:
            results[key] = None
            continue
        results[key] = {
            'teacherIds': grade_book.teacher_ids,
            'teacherNames': [teacher_names[t] for t in grade_book.teacher_ids if t in teacher_names],
            'columns': grade_book.columns,
            'students': grade_book.students,
            'grades': grade_book.grades,
        }
    return results


### 頂標 / 前標 / 均標 / 後標 / 底標 取高分往下第幾個百分位
PERCENTILE_LEVELS = (
    ('頂標', 0.12),
    ('前標', 0.25),
    ('均標', 0.5),
    ('後標', 0.75),
    ('底標', 0.88),
)

SCORE_BANDS = (
    ('90-100', 90),
    ('80-89', 80),
    ('70-79', 70),
    ('60-69', 60),
    ('50-59', 50),
    ('<50', None),
)


def _is_score(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def percentile_levels(scores):
    levels = {'平均': 0}
    levels.update((name, 0) for name, _ in PERCENTILE_LEVELS)
    if not scores:
        return levels

    ordered = sorted(scores, reverse=True)
    levels['平均'] = round(sum(scores) / len(scores), 1)
    for name, ratio in PERCENTILE_LEVELS:
        levels[name] = ordered[int(len(ordered) * ratio)]
    return levels


def score_distribution(scores):
    counts = {band: 0 for band, _ in SCORE_BANDS}
    for score in scores:
        for band, floor in SCORE_BANDS:
            if floor is None or score >= floor:
                counts[band] += 1
                break
    return [{'range': band, 'count': counts[band]} for band, _ in SCORE_BANDS]


def grade_distribution(course_key, column_id):
    """
    單一成績欄位的統計: 平均與五標，以及 90-100 ... <50 的分數分布
    沒有任何分數時統計全為 0、分布為空陣列
    """
    grade_book = GradeBook.objects.filter(course_key=course_key).first()
    if grade_book is None:
        raise NotFound(f'找不到 {course_key} 的成績。')

    ### JSON 物件的 key 一律是字串
    column = str(column_id)
    scores = [
        row.get('regularScores', {}).get(column)
        for row in grade_book.grades.values()
        if isinstance(row, dict) and isinstance(row.get('regularScores'), dict)
    ]
    scores = [score for score in scores if _is_score(score)]

    if not scores:
        return {'statistics': percentile_levels([]), 'distribution': []}
    return {'statistics': percentile_levels(scores), 'distribution': score_distribution(scores)}
