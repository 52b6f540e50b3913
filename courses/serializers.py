from rest_framework import serializers
from .models import Course


class CourseSerializer(serializers.ModelSerializer):
    ### course_key 不是 DB 欄位，是 "名稱(代碼)"，學生名單與成績都用它當 id
    course_key = serializers.CharField(read_only=True)
    teacher_ids = serializers.ListField(child=serializers.IntegerField(), required=False)
    grades = serializers.ListField(child=serializers.CharField(), required=False)

    class Meta:
        model = Course
        fields = [
            'id', 'name', 'course_code', 'course_key', 'subject', 'grades',
            'teacher_ids', 'description', 'start_date', 'end_date', 'class_time',
            'location', 'status', 'archived', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'archived', 'created_at', 'updated_at']
        ### 同名同代碼的檢查交給 service 回傳 course_key_conflict
        validators = []


class StudentCourseSerializer(serializers.Serializer):
    """學生已選課程 (enrolled_courses 與課程資料的交集)"""
    id = serializers.IntegerField()
    name = serializers.CharField()
    code = serializers.CharField()
    subject = serializers.CharField(allow_blank=True)
    grade = serializers.CharField(allow_blank=True)


### ---------- request body ----------

class CourseArchiveSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    archived = serializers.BooleanField()


class CourseListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)
    subject = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Course.STATUS_CHOICES, required=False)
    teacherId = serializers.IntegerField(required=False)
    includeArchived = serializers.BooleanField(required=False, default=False)


class UpdateTeachersSerializer(serializers.Serializer):
    courseId = serializers.IntegerField()
    teacherIds = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    oldTeacherIds = serializers.ListField(child=serializers.IntegerField(), required=False)


class RemoveFromTeachersSerializer(serializers.Serializer):
    courseId = serializers.IntegerField()
    teacherIds = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)


class CourseKeySerializer(serializers.Serializer):
    courseName = serializers.CharField()
    courseCode = serializers.CharField()


class RemoveStudentSerializer(CourseKeySerializer):
    studentId = serializers.IntegerField()


class StudentInfoSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True)
    account = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)
    studentId = serializers.CharField(required=False, allow_blank=True)
    grade = serializers.CharField(required=False, allow_blank=True)


class SaveEnrollmentSerializer(serializers.Serializer):
    studentId = serializers.IntegerField()
    oldCourses = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    newCourses = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    studentInfo = StudentInfoSerializer(required=False, allow_null=True)


class GradeListSerializer(serializers.Serializer):
    courseKeys = serializers.ListField(child=serializers.CharField(), allow_empty=False)


class GradeSaveSerializer(CourseKeySerializer):
    gradeData = serializers.DictField()


class CourseIdSerializer(serializers.Serializer):
    id = serializers.IntegerField()


class GradeDistributionSerializer(serializers.Serializer):
    courseKey = serializers.CharField()
    columnId = serializers.CharField()


class StudentCoursesQuerySerializer(serializers.Serializer):
    studentId = serializers.IntegerField(required=False, allow_null=True)
