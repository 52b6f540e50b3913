"""
URL configuration for tutoring_platform_project project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include, re_path
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

schema_view = get_schema_view(
   openapi.Info(
      title="輔導預約與課程管理 API",
      default_version='v1',
      description="課程、學生名單、成績與輔導時段預約 API 文件",
   ),
   public=True,
   permission_classes=[permissions.AllowAny],
   authentication_classes=[], # 允許匿名訪問 Swagger
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('courses.urls')),
    path('api/', include('tutoring.urls')),
    path('api/', include('accounts.urls')),

    re_path(r'^swagger(?P<format>\.json|\.yaml)$', schema_view.without_ui(cache_timeout=0), name='schema-json'),
    re_path(r'^swagger/$', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
]
