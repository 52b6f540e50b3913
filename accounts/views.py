import logging

from rest_framework import status, generics
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView
from django.contrib.auth import login, logout
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .permissions import IsStudent
from .serializers import LoginSerializer, UserSerializer, RegisterSerializer, StudentProfileSerializer
from .models import User, StudentProfile

logger = logging.getLogger(__name__)


class LoginView(APIView):
    """
    使用者登入端點
    支援 Session 和 JWT Token 兩種認證方式
    角色一律由伺服器端的使用者資料決定，不接受前端傳入
    """
    permission_classes = [AllowAny]
    serializer_class = LoginSerializer

    @swagger_auto_schema(
        request_body=LoginSerializer,
        responses={
            200: openapi.Response(
                description="登入成功",
                examples={
                    "application/json": {
                        "user": {
                            "id": 1,
                            "username": "student001",
                            "name": "王小明",
                            "role": "student"
                        },
                        "token": {
                            "access": "eyJ0eXAiOiJKV1QiLCJhbGc...",
                            "refresh": "eyJ0eXAiOiJKV1QiLCJhbGc..."
                        },
                        "message": "登入成功"
                    }
                }
            ),
            400: "登入失敗"
        }
    )
    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(
            data=request.data,
            context={'request': request}
        )

        if not serializer.is_valid():
            logger.info('登入失敗: %s', request.data.get('username'))
            return Response(
                {'error': '登入失敗', 'code': 'login_failed', 'fields': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        user = serializer.validated_data['user']

        # Session 認證
        login(request, user)

        response_data = {
            'user': UserSerializer(user).data,
            'message': '登入成功'
        }

        if request.data.get('use_jwt', False):
            refresh = RefreshToken.for_user(user)
            response_data['token'] = {
                'refresh': str(refresh),
                'access': str(refresh.access_token),
            }

        return Response(response_data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    """
    使用者登出端點
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        responses={
            200: openapi.Response(
                description="登出成功",
                examples={
                    "application/json": {
                        "message": "登出成功"
                    }
                }
            )
        }
    )
    def post(self, request, *args, **kwargs):
        logout(request)
        return Response(
            {'message': '登出成功'},
            status=status.HTTP_200_OK
        )


class CurrentUserView(APIView):
    """
    取得當前登入使用者資訊
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        responses={
            200: UserSerializer
        }
    )
    def get(self, request, *args, **kwargs):
        serializer = UserSerializer(request.user)
        return Response(serializer.data)


class RegisterView(generics.CreateAPIView):
    """
    學生註冊端點
    """
    queryset = User.objects.all()
    serializer_class = RegisterSerializer
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        responses={
            201: openapi.Response(
                description="註冊成功",
                examples={
                    "application/json": {
                        "user": {
                            "id": 1,
                            "username": "student001",
                            "name": "王小明",
                            "role": "student"
                        },
                        "message": "註冊成功"
                    }
                }
            )
        }
    )
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info('新學生註冊: %s', user.username)

        return Response(
            {
                'user': UserSerializer(user).data,
                'message': '註冊成功'
            },
            status=status.HTTP_201_CREATED
        )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """自訂 JWT Token 序列化器，加入使用者資訊"""
    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data


class CustomTokenObtainPairView(TokenObtainPairView):
    """自訂 JWT 登入視圖"""
    serializer_class = CustomTokenObtainPairSerializer


class StudentProfileView(APIView):
    """
    學生資料 (電話、學校)；enrolled_courses 由名單同步流程維護，不能直接修改
    """
    permission_classes = [IsAuthenticated, IsStudent]

    def get_profile(self, user):
        profile, created = StudentProfile.objects.get_or_create(
            user=user, defaults={'enrolled_courses': user.enrolled_courses}
        )
        if created:
            logger.info('補建學生資料: %s', user.username)
        return profile

    @swagger_auto_schema(responses={200: StudentProfileSerializer})
    def get(self, request, *args, **kwargs):
        return Response(StudentProfileSerializer(self.get_profile(request.user)).data)

    @swagger_auto_schema(request_body=StudentProfileSerializer, responses={200: StudentProfileSerializer})
    def patch(self, request, *args, **kwargs):
        serializer = StudentProfileSerializer(self.get_profile(request.user), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
