from rest_framework.routers import SimpleRouter

from .views import CourseViewSet, CourseStudentListViewSet, GradeViewSet, StudentViewSet

router = SimpleRouter()
router.register(r'courses', CourseViewSet, basename='course')
router.register(r'course-student-list', CourseStudentListViewSet, basename='course-student-list')
router.register(r'grades', GradeViewSet, basename='grade')
router.register(r'student', StudentViewSet, basename='student')

urlpatterns = router.urls
