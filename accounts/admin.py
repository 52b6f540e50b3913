from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, StudentProfile

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'name', 'role', 'student_id', 'email', 'is_active')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('username', 'name', 'student_id', 'email')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('額外資訊', {'fields': ('name', 'role', 'student_id', 'grade', 'enrolled_courses', 'courses')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('額外資訊', {'fields': ('name', 'role', 'email', 'student_id', 'grade')}),
    )


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'school', 'phone', 'updated_at')
    search_fields = ('user__name', 'user__username')
