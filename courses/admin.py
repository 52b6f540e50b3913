from django.contrib import admin
from .models import Course, CourseStudentList, GradeBook


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ('name', 'course_code', 'subject', 'status', 'archived', 'updated_at')
    list_filter = ('status', 'archived', 'subject')
    search_fields = ('name', 'course_code')


@admin.register(CourseStudentList)
class CourseStudentListAdmin(admin.ModelAdmin):
    list_display = ('course_key', 'updated_at')
    search_fields = ('course_key',)


@admin.register(GradeBook)
class GradeBookAdmin(admin.ModelAdmin):
    list_display = ('course_key', 'updated_at')
    search_fields = ('course_key',)
