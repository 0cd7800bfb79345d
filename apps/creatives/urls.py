from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ImageAssetViewSet

router = DefaultRouter()
router.register(r'assets', ImageAssetViewSet, basename='asset')

urlpatterns = [
    path('', include(router.urls)),
]
