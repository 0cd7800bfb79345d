from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CreditTransactionViewSet, credit_balance

router = DefaultRouter()
router.register(r'credits/transactions', CreditTransactionViewSet, basename='credit-transaction')

urlpatterns = [
    path('credits/', credit_balance, name='credit-balance'),
    path('', include(router.urls)),
]
