from rest_framework import serializers

from courses.serializers import StudentCourseSerializer
from .models import TimeSlot, TutoringSession, GROUP_SLOT_CAPACITY


class TimeSlotSerializer(serializers.ModelSerializer):
    teacher_id = serializers.IntegerField(read_only=True)
    course_restrictions = serializers.ListField(child=serializers.IntegerField(), required=False)
    remaining_seats = serializers.IntegerField(read_only=True)
    time = serializers.TimeField(format='%H:%M')

    class Meta:
        model = TimeSlot
        fields = [
            'id', 'teacher_id', 'teacher_name', 'date', 'time', 'duration',
            'tutoring_type', 'max_students', 'current_students', 'remaining_seats', 'status',
            'subject_restriction', 'course_restrictions', 'tutoring_method', 'location',
            'notes', 'created_at', 'updated_at'
        ]
        ### 人數與狀態只能由預約流程改變
        read_only_fields = ['id', 'teacher_name', 'current_students', 'status', 'created_at', 'updated_at']

    def _current(self, attrs, field):
        if field in attrs:
            return attrs[field]
        if self.instance is not None:
            return getattr(self.instance, field)
        return None

    def validate(self, attrs):
        # 團體輔導不限人數
        tutoring_type = self._current(attrs, 'tutoring_type')
        if tutoring_type == TimeSlot.TYPE_GROUP:
            attrs['max_students'] = GROUP_SLOT_CAPACITY
        elif self.instance is not None and 'max_students' not in attrs \
                and self.instance.max_students == GROUP_SLOT_CAPACITY:
            ### 團體改為個人輔導時不保留團體人數上限
            attrs['max_students'] = max(1, self.instance.current_students)

        ### 課程限制與科目限制二擇一，同時給時以課程限制為準
        if attrs.get('course_restrictions'):
            attrs['subject_restriction'] = ''
        elif attrs.get('subject_restriction'):
            attrs['course_restrictions'] = []

        method = self._current(attrs, 'tutoring_method') or TimeSlot.METHOD_ONLINE
        if method == TimeSlot.METHOD_PHYSICAL:
            if not self._current(attrs, 'location'):
                raise serializers.ValidationError({'location': '實體輔導必須填寫地點。'})
        elif 'tutoring_method' in attrs or attrs.get('location'):
            attrs['location'] = ''

        if self.instance is not None and 'max_students' in attrs \
                and attrs['max_students'] < self.instance.current_students:
            raise serializers.ValidationError(
                {'max_students': f'人數上限不可小於已預約人數 ({self.instance.current_students})。'}
            )
        if attrs.get('max_students') is not None and attrs['max_students'] < 1:
            raise serializers.ValidationError({'max_students': '人數上限至少為 1。'})
        return attrs


class BookableSlotSerializer(serializers.Serializer):
    """時段 + 學生在此時段可用的課程"""
    slot = TimeSlotSerializer()
    eligibleCourses = StudentCourseSerializer(many=True)

    def to_representation(self, instance):
        slot, courses = instance
        data = TimeSlotSerializer(slot).data
        data['eligibleCourses'] = StudentCourseSerializer(courses, many=True).data
        return data


class TutoringSessionSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    time = serializers.TimeField(format='%H:%M', read_only=True)

    class Meta:
        model = TutoringSession
        fields = [
            'id', 'student', 'student_name', 'student_account', 'teacher', 'teacher_name',
            'time_slot', 'subject', 'course', 'course_name', 'date', 'time', 'duration',
            'status', 'status_display', 'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


### ---------- request body ----------

class SlotListQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False, allow_null=True)
    teacherId = serializers.IntegerField(required=False, allow_null=True)


class SlotIdSerializer(serializers.Serializer):
    id = serializers.IntegerField()


class BookSlotSerializer(serializers.Serializer):
    slotId = serializers.IntegerField()
    courseId = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class SessionStatusSerializer(serializers.Serializer):
    sessionId = serializers.IntegerField()
    newStatus = serializers.ChoiceField(choices=TutoringSession.STATUS_CHOICES)


class SessionIdSerializer(serializers.Serializer):
    sessionId = serializers.IntegerField()


class SessionListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TutoringSession.STATUS_CHOICES, required=False)
