from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CampaignViewSet, PlatformConnectionViewSet

router = DefaultRouter()
router.register(r'campaigns', CampaignViewSet, basename='campaign')
router.register(r'connections', PlatformConnectionViewSet, basename='connection')

urlpatterns = [
    path('', include(router.urls)),
]
