from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema

from accounts.permissions import IsStudent, IsTeacher
from courses.exceptions import require_field
from .serializers import (
    TimeSlotSerializer,
    BookableSlotSerializer,
    TutoringSessionSerializer,
    SlotListQuerySerializer,
    SlotIdSerializer,
    BookSlotSerializer,
    SessionStatusSerializer,
    SessionIdSerializer,
    SessionListQuerySerializer,
)
from . import services


class TimeSlotViewSet(viewsets.ViewSet):
    """
    輔導時段 ViewSet
    老師建立 / 修改 / 取消自己的時段，學生查詢可預約時段並預約
    """
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in ('create_slot', 'update_slot', 'delete_slot'):
            return [IsAuthenticated(), IsTeacher()]
        if self.action in ('bookable', 'book'):
            return [IsAuthenticated(), IsStudent()]
        return super().get_permissions()

    @swagger_auto_schema(request_body=TimeSlotSerializer, responses={201: TimeSlotSerializer})
    @action(detail=False, methods=['post'], url_path='create', url_name='create')
    def create_slot(self, request):
        serializer = TimeSlotSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        slot = services.create_time_slot(request.user, dict(serializer.validated_data))
        return Response(TimeSlotSerializer(slot).data, status=status.HTTP_201_CREATED)

    @swagger_auto_schema(request_body=SlotListQuerySerializer, responses={200: TimeSlotSerializer(many=True)})
    @action(detail=False, methods=['post'], url_path='list', url_name='list')
    def list_slots(self, request):
        """
        老師看自己的時段；學生看今天以後可預約的時段；管理員看全部
        """
        query = SlotListQuerySerializer(data=request.data)
        query.is_valid(raise_exception=True)
        slots = services.list_available_slots(
            request.user,
            date=query.validated_data.get('date'),
            teacher_id=query.validated_data.get('teacherId'),
        )
        return Response(TimeSlotSerializer(slots, many=True).data)

    @swagger_auto_schema(request_body=SlotListQuerySerializer, responses={200: BookableSlotSerializer(many=True)})
    @action(detail=False, methods=['post'], url_path='bookable', url_name='bookable')
    def bookable(self, request):
        """仍有名額且符合課程 / 科目限制的時段，附上可用課程 eligibleCourses"""
        query = SlotListQuerySerializer(data=request.data)
        query.is_valid(raise_exception=True)
        pairs = services.list_bookable_slots(request.user, date=query.validated_data.get('date'))
        return Response(BookableSlotSerializer(pairs, many=True).data)

    @swagger_auto_schema(request_body=TimeSlotSerializer, responses={200: TimeSlotSerializer})
    @action(detail=False, methods=['post'], url_path='update', url_name='update')
    def update_slot(self, request):
        slot = services.get_slot(require_field(request.data, 'id'))
        ### 先確認時段擁有者，再驗證欄位
        services.check_slot_owner(slot, request.user)
        serializer = TimeSlotSerializer(slot, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        slot = services.update_time_slot(slot, request.user, dict(serializer.validated_data))
        return Response(TimeSlotSerializer(slot).data)

    @swagger_auto_schema(request_body=SlotIdSerializer, responses={200: TimeSlotSerializer})
    @action(detail=False, methods=['post'], url_path='delete', url_name='delete')
    def delete_slot(self, request):
        """時段改為 cancelled，既有的輔導紀錄保留"""
        serializer = SlotIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        slot = services.get_slot(serializer.validated_data['id'])
        slot = services.cancel_time_slot(slot, request.user)
        return Response({'success': True, 'slot': TimeSlotSerializer(slot).data})

    @swagger_auto_schema(request_body=BookSlotSerializer, responses={201: TutoringSessionSerializer})
    @action(detail=False, methods=['post'], url_path='book', url_name='book')
    def book(self, request):
        serializer = BookSlotSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        session = services.book_slot(
            request.user, data['slotId'], course_id=data.get('courseId'), notes=data.get('notes', '')
        )
        return Response(TutoringSessionSerializer(session).data, status=status.HTTP_201_CREATED)


class TutoringSessionViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action == 'delete_session':
            return [IsAuthenticated(), IsTeacher()]
        return super().get_permissions()

    @swagger_auto_schema(request_body=SessionListQuerySerializer, responses={200: TutoringSessionSerializer(many=True)})
    @action(detail=False, methods=['post'], url_path='list', url_name='list')
    def list_sessions(self, request):
        query = SessionListQuerySerializer(data=request.data)
        query.is_valid(raise_exception=True)
        sessions = services.list_sessions(request.user, status=query.validated_data.get('status'))
        return Response(TutoringSessionSerializer(sessions, many=True).data)

    @swagger_auto_schema(
        operation_description="pending → confirmed / cancelled，confirmed → completed；學生只能取消自己的預約",
        request_body=SessionStatusSerializer,
        responses={200: TutoringSessionSerializer}
    )
    @action(detail=False, methods=['post'], url_path='update-status', url_name='update-status')
    def update_status(self, request):
        serializer = SessionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = services.change_session_status(
            serializer.validated_data['sessionId'],
            serializer.validated_data['newStatus'],
            request.user,
        )
        return Response(TutoringSessionSerializer(session).data)

    @swagger_auto_schema(request_body=SessionIdSerializer)
    @action(detail=False, methods=['post'], url_path='delete', url_name='delete')
    def delete_session(self, request):
        serializer = SessionIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.delete_session(serializer.validated_data['sessionId'], request.user)
        return Response({'success': True})
