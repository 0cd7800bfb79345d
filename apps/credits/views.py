from rest_framework import viewsets
from rest_framework.decorators import api_view
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from .ledger import CreditLedger
from .models import CreditTransaction
from .serializers import CreditTransactionSerializer


@api_view(['GET'])
def credit_balance(request):
    """Current credit balance of the authenticated user"""
    balance = CreditLedger().get_balance(request.user.id)
    return Response({'owner_id': request.user.id, 'balance': balance})


class CreditTransactionViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = CreditTransactionSerializer

    def get_queryset(self):
        return CreditTransaction.objects.filter(account__owner_id=self.request.user.id)
