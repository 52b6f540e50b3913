from django.contrib import admin
from .models import TimeSlot, TutoringSession


@admin.register(TimeSlot)
class TimeSlotAdmin(admin.ModelAdmin):
    list_display = ('teacher_name', 'date', 'time', 'tutoring_type', 'current_students', 'max_students', 'status')
    list_filter = ('status', 'tutoring_type', 'tutoring_method', 'date')
    search_fields = ('teacher_name', 'subject_restriction')
    readonly_fields = ('current_students',)


@admin.register(TutoringSession)
class TutoringSessionAdmin(admin.ModelAdmin):
    list_display = ('student_name', 'teacher_name', 'subject', 'date', 'time', 'status')
    list_filter = ('status', 'date')
    search_fields = ('student_name', 'student_account', 'teacher_name')
