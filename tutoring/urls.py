from rest_framework.routers import SimpleRouter

from .views import TimeSlotViewSet, TutoringSessionViewSet

router = SimpleRouter()
router.register(r'time-slots', TimeSlotViewSet, basename='time-slot')
router.register(r'tutoring-sessions', TutoringSessionViewSet, basename='tutoring-session')

urlpatterns = router.urls
