from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from accounts.models import User
from accounts.permissions import IsTeacher
from .exceptions import Forbidden, NotFound, require_field
from .models import Course, build_course_key
from .serializers import (
    CourseSerializer,
    StudentCourseSerializer,
    CourseArchiveSerializer,
    CourseIdSerializer,
    CourseListQuerySerializer,
    UpdateTeachersSerializer,
    RemoveFromTeachersSerializer,
    CourseKeySerializer,
    RemoveStudentSerializer,
    SaveEnrollmentSerializer,
    GradeListSerializer,
    GradeSaveSerializer,
    GradeDistributionSerializer,
    StudentCoursesQuerySerializer,
)
from . import services

SYNC_RESULT_SCHEMA = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
        'partial': openapi.Schema(type=openapi.TYPE_BOOLEAN, description='部分文件同步失敗'),
        'added': openapi.Schema(type=openapi.TYPE_ARRAY, items=openapi.Schema(type=openapi.TYPE_INTEGER)),
        'removed': openapi.Schema(type=openapi.TYPE_ARRAY, items=openapi.Schema(type=openapi.TYPE_INTEGER)),
        'failures': openapi.Schema(
            type=openapi.TYPE_ARRAY,
            items=openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'target': openapi.Schema(type=openapi.TYPE_STRING),
                    'error': openapi.Schema(type=openapi.TYPE_STRING),
                }
            )
        ),
    }
)


def sync_response(result):
    return {'success': not result['partial'], **result}


class CourseViewSet(viewsets.GenericViewSet):
    """
    課程 ViewSet
    查詢支援關鍵字、科目、狀態、授課老師篩選；新增 / 修改 / 封存 / 授課老師同步限老師或管理員
    """
    queryset = Course.objects.all()
    serializer_class = CourseSerializer
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action == 'list_courses':
            return [IsAuthenticated()]
        return [IsAuthenticated(), IsTeacher()]

    def filter_courses(self, params):
        queryset = self.get_queryset()
        # 搜尋功能
        search = params.get('search')
        if search:
            queryset = queryset.filter(name__icontains=search)

        subject = params.get('subject')
        if subject:
            queryset = queryset.filter(subject=subject)

        course_status = params.get('status')
        if course_status:
            queryset = queryset.filter(status=course_status)

        if not params.get('includeArchived'):
            queryset = queryset.filter(archived=False)

        courses = list(queryset.order_by('id'))

        ### teacher_ids 是 JSON 陣列，SQLite 不支援 contains 查詢，改在 Python 過濾
        teacher_id = params.get('teacherId')
        if teacher_id is not None:
            courses = [course for course in courses if teacher_id in course.teacher_ids]
        return courses

    @swagger_auto_schema(
        method='post',
        request_body=CourseListQuerySerializer,
        responses={200: CourseSerializer(many=True)}
    )
    @swagger_auto_schema(method='get', query_serializer=CourseListQuerySerializer)
    @action(detail=False, methods=['get', 'post'], url_path='list', url_name='list')
    def list_courses(self, request):
        """
        回傳 {"count": <課程數量>, "results": <課程列表>}
        """
        params = request.data if request.method == 'POST' else request.query_params
        query = CourseListQuerySerializer(data=params)
        query.is_valid(raise_exception=True)
        courses = self.filter_courses(query.validated_data)

        page = self.paginate_queryset(courses)
        if page is not None:
            serializer = CourseSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = CourseSerializer(courses, many=True)
        return Response({
            'count': len(courses),
            'results': serializer.data
        })

    @swagger_auto_schema(request_body=CourseSerializer, responses={201: CourseSerializer})
    @action(detail=False, methods=['post'], url_path='create', url_name='create')
    def create_course(self, request):
        """
        建立課程，若指定 teacher_ids 同步加入老師的授課清單
        """
        serializer = CourseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course, sync = services.create_course(dict(serializer.validated_data))
        return Response(
            {'course': CourseSerializer(course).data, 'teacherSync': sync},
            status=status.HTTP_201_CREATED
        )

    @swagger_auto_schema(request_body=CourseSerializer, responses={200: CourseSerializer})
    @action(detail=False, methods=['post'], url_path='update', url_name='update')
    def update_course(self, request):
        """
        修改課程；名稱或代碼變更時，學生名單、成績、老師授課清單一併改用新的課程鍵值
        """
        course = services.get_course(require_field(request.data, 'id'))
        serializer = CourseSerializer(course, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        course, sync = services.update_course(course, dict(serializer.validated_data))
        return Response({'course': CourseSerializer(course).data, 'teacherSync': sync})

    @swagger_auto_schema(request_body=CourseArchiveSerializer)
    @action(detail=False, methods=['post'], url_path='archive', url_name='archive')
    def archive(self, request):
        serializer = CourseArchiveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = services.get_course(serializer.validated_data['id'])
        services.archive_course(course, serializer.validated_data['archived'])
        return Response({'success': True, 'course': CourseSerializer(course).data})

    @swagger_auto_schema(request_body=CourseIdSerializer, responses={200: SYNC_RESULT_SCHEMA})
    @action(detail=False, methods=['post'], url_path='delete', url_name='delete')
    def delete_course(self, request):
        """
        刪除課程，授課老師的授課清單、學生的 enrolled_courses、學生名單與成績一併清除
        """
        serializer = CourseIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = services.get_course(serializer.validated_data['id'])
        result = services.delete_course(course)
        return Response(sync_response(result))

    @swagger_auto_schema(request_body=UpdateTeachersSerializer, responses={200: SYNC_RESULT_SCHEMA})
    @action(detail=False, methods=['post'], url_path='update-teachers', url_name='update-teachers')
    def update_teachers(self, request):
        """
        更新授課老師：舊老師移除課程鍵值、新老師加入課程鍵值
        未傳 oldTeacherIds 時以課程目前的 teacher_ids 為舊清單
        """
        serializer = UpdateTeachersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        course = services.get_course(data['courseId'])
        result = services.sync_course_teachers(course, data['teacherIds'], data.get('oldTeacherIds'))
        return Response(sync_response(result))

    @swagger_auto_schema(request_body=RemoveFromTeachersSerializer, responses={200: SYNC_RESULT_SCHEMA})
    @action(detail=False, methods=['post'], url_path='remove-from-teachers', url_name='remove-from-teachers')
    def remove_from_teachers(self, request):
        serializer = RemoveFromTeachersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = services.get_course(serializer.validated_data['courseId'])
        result = services.remove_course_from_teachers(course, serializer.validated_data['teacherIds'])
        return Response(sync_response(result))


class CourseStudentListViewSet(viewsets.ViewSet):
    """
    課程學生名單 ViewSet (以課程鍵值 "名稱(代碼)" 為 id 的名單文件)
    """
    permission_classes = [IsAuthenticated, IsTeacher]

    @swagger_auto_schema(request_body=CourseKeySerializer)
    @action(detail=False, methods=['post'], url_path='list', url_name='list')
    def list_students(self, request):
        """名單文件不存在時回傳空陣列"""
        serializer = CourseKeySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        course_key = build_course_key(data['courseName'], data['courseCode'])
        return Response(services.list_course_students(course_key))

    @swagger_auto_schema(
        operation_description="學生加退選後同步課程學生名單與 enrolled_courses",
        request_body=SaveEnrollmentSerializer,
        responses={200: SYNC_RESULT_SCHEMA}
    )
    @action(detail=False, methods=['post'], url_path='save', url_name='save')
    def save(self, request):
        serializer = SaveEnrollmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = services.sync_enrollment(
            data['studentId'],
            data['oldCourses'],
            data['newCourses'],
            data.get('studentInfo') or None,
        )
        return Response(sync_response(result))

    @swagger_auto_schema(request_body=RemoveStudentSerializer)
    @action(detail=False, methods=['post'], url_path='remove-student', url_name='remove-student')
    def remove_student(self, request):
        serializer = RemoveStudentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        course = services.get_course_by_key(data['courseName'], data['courseCode'])
        services.remove_student_from_course(course, data['studentId'])
        return Response({'success': True})


class GradeViewSet(viewsets.ViewSet):
    """
    成績文件，以課程鍵值為 id
    """
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action == 'save':
            return [IsAuthenticated(), IsTeacher()]
        return super().get_permissions()

    def check_course_keys(self, user, course_keys):
        ### 學生只能查自己有選的課程
        if not user.is_student:
            return
        own_keys = {
            build_course_key(c['name'], c['code']) for c in services.get_student_courses(user)
        }
        if any(key not in own_keys for key in course_keys):
            raise Forbidden('只能查詢自己選修課程的成績。')

    @swagger_auto_schema(request_body=GradeListSerializer)
    @action(detail=False, methods=['post'], url_path='list', url_name='list')
    def list_grades(self, request):
        """回傳 {課程鍵值: 成績文件 或 null}"""
        serializer = GradeListSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course_keys = serializer.validated_data['courseKeys']
        self.check_course_keys(request.user, course_keys)
        return Response(services.list_grade_books(course_keys))

    @swagger_auto_schema(
        operation_description="單一成績欄位的平均、五標 (頂標 / 前標 / 均標 / 後標 / 底標) 與分數分布",
        request_body=GradeDistributionSerializer
    )
    @action(detail=False, methods=['post'], url_path='distribution', url_name='distribution')
    def distribution(self, request):
        serializer = GradeDistributionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self.check_course_keys(request.user, [data['courseKey']])
        return Response(services.grade_distribution(data['courseKey'], data['columnId']))

    @swagger_auto_schema(request_body=GradeSaveSerializer)
    @action(detail=False, methods=['post'], url_path='save', url_name='save')
    def save(self, request):
        serializer = GradeSaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        course = services.get_course_by_key(data['courseName'], data['courseCode'])
        services.save_grade_book(course, data['gradeData'])
        return Response({'success': True})


class StudentViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        method='post',
        operation_description="學生已選課程；老師或管理員可傳 studentId 查詢指定學生",
        request_body=openapi.Schema(
            type=openapi.TYPE_OBJECT,
            properties={'studentId': openapi.Schema(type=openapi.TYPE_INTEGER)}
        ),
        responses={200: StudentCourseSerializer(many=True)}
    )
    @action(detail=False, methods=['get', 'post'], url_path='courses', url_name='courses')
    def courses(self, request):
        student = request.user
        student_id = None
        if request.method == 'POST':
            query = StudentCoursesQuerySerializer(data=request.data)
            query.is_valid(raise_exception=True)
            student_id = query.validated_data.get('studentId')
        if student_id is not None and student_id != request.user.pk:
            if request.user.is_student:
                raise Forbidden('無法查詢其他學生的課程。')
            student = User.objects.filter(pk=student_id, role=User.ROLE_STUDENT).first()
            if student is None:
                raise NotFound('找不到學生。')
        courses = services.get_student_courses(student)
        return Response(StudentCourseSerializer(courses, many=True).data)
