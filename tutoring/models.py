from django.db import models
from accounts.models import User
from courses.models import Course

### 團體輔導不限人數，max_students 固定為此值
GROUP_SLOT_CAPACITY = 999


class TimeSlot(models.Model):
    TYPE_INDIVIDUAL = 'individual'
    TYPE_GROUP = 'group'
    TUTORING_TYPE_CHOICES = (
        (TYPE_INDIVIDUAL, '個人輔導'),
        (TYPE_GROUP, '團體輔導'),
    )

    METHOD_ONLINE = 'online'
    METHOD_PHYSICAL = 'physical'
    TUTORING_METHOD_CHOICES = (
        (METHOD_ONLINE, '線上輔導'),
        (METHOD_PHYSICAL, '實體輔導'),
    )

    STATUS_AVAILABLE = 'available'
    STATUS_FULL = 'full'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_AVAILABLE, '可預約'),
        (STATUS_FULL, '已額滿'),
        (STATUS_CANCELLED, '已取消'),
    )

    teacher = models.ForeignKey(
        User, related_name='time_slots', on_delete=models.CASCADE,
        limit_choices_to={'role': 'teacher'}
    )
    teacher_name = models.CharField('老師姓名', max_length=100, blank=True)
    date = models.DateField('日期')
    time = models.TimeField('開始時間')
    duration = models.PositiveIntegerField('時長(分鐘)', default=60)
    tutoring_type = models.CharField('輔導性質', max_length=20, choices=TUTORING_TYPE_CHOICES, default=TYPE_INDIVIDUAL)
    max_students = models.PositiveIntegerField('人數上限', default=1)
    current_students = models.PositiveIntegerField('已預約人數', default=0)
    status = models.CharField('狀態', max_length=20, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)

    ### 科目限制與課程限制二擇一，寫入時由 serializer 清掉另一個
    subject_restriction = models.CharField('科目限制', max_length=50, blank=True)
    course_restrictions = models.JSONField('課程限制', default=list, blank=True)

    tutoring_method = models.CharField('輔導方式', max_length=20, choices=TUTORING_METHOD_CHOICES, default=METHOD_ONLINE)
    location = models.CharField('地點', max_length=100, blank=True)
    notes = models.TextField('備註', blank=True)
    created_at = models.DateTimeField('建立時間', auto_now_add=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    class Meta:
        ordering = ('date', 'time')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_students__lte=models.F('max_students')),
                name='time_slot_within_capacity',
            ),
        ]

    def __str__(self):
        return f"{self.teacher_name} {self.date} {self.time} ({self.get_status_display()})"

    @property
    def is_bookable(self):
        return self.status == self.STATUS_AVAILABLE and self.current_students < self.max_students

    @property
    def remaining_seats(self):
        return max(self.max_students - self.current_students, 0)


class TutoringSession(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, '待確認'),
        (STATUS_CONFIRMED, '已確認'),
        (STATUS_COMPLETED, '已完成'),
        (STATUS_CANCELLED, '已取消'),
    )

    ### cancelled、completed 是終止狀態
    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: (STATUS_CONFIRMED, STATUS_CANCELLED),
        STATUS_CONFIRMED: (STATUS_COMPLETED,),
        STATUS_COMPLETED: (),
        STATUS_CANCELLED: (),
    }

    ### 這些狀態的預約佔用時段名額
    SEAT_HOLDING_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

    student = models.ForeignKey(User, related_name='tutoring_sessions', on_delete=models.CASCADE)
    student_name = models.CharField('學生姓名', max_length=100, blank=True)
    student_account = models.CharField('學生帳號', max_length=150, blank=True)
    teacher = models.ForeignKey(User, related_name='taught_sessions', on_delete=models.CASCADE)
    teacher_name = models.CharField('老師姓名', max_length=100, blank=True)
    time_slot = models.ForeignKey(
        TimeSlot, related_name='sessions', null=True, blank=True, on_delete=models.SET_NULL
    )
    subject = models.CharField('科目', max_length=50, blank=True)
    course = models.ForeignKey(
        Course, related_name='tutoring_sessions', null=True, blank=True, on_delete=models.SET_NULL
    )
    course_name = models.CharField('課程名稱', max_length=100, blank=True)
    date = models.DateField('日期')
    time = models.TimeField('開始時間')
    duration = models.PositiveIntegerField('時長(分鐘)', default=60)
    status = models.CharField('狀態', max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField('備註', blank=True)
    created_at = models.DateTimeField('建立時間', auto_now_add=True)
    updated_at = models.DateTimeField('更新時間', auto_now=True)

    class Meta:
        ordering = ('-created_at',)
        constraints = [
            ### 同一學生在同一時段只能有一筆佔用名額的預約
            models.UniqueConstraint(
                fields=['student', 'time_slot'],
                condition=models.Q(status__in=('pending', 'confirmed')),
                name='tutoring_session_one_active_booking',
            ),
        ]

    def __str__(self):
        return f"{self.student_name} -> {self.teacher_name} {self.date} ({self.get_status_display()})"

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, ())

    @property
    def holds_seat(self):
        return self.time_slot_id is not None and self.status in self.SEAT_HOLDING_STATUSES
