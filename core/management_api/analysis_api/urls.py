from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import PropertyAnalysisViewSet, AnalysisGroupViewSet

# Mounted at /api/ so the resources live at /api/analyses/ and /api/groups/
router = SimpleRouter()
router.register(r'analyses', PropertyAnalysisViewSet, basename='analysis')
router.register(r'groups', AnalysisGroupViewSet, basename='analysis-group')

urlpatterns = [
    path('', include(router.urls)),
]
