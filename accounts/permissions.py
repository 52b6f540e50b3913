from rest_framework.permissions import BasePermission


class IsStudent(BasePermission):
    message = '僅限學生操作。'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_student)


class IsTeacher(BasePermission):
    """老師或管理員"""
    message = '僅限老師或管理員操作。'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_teacher or user.is_admin_role))

