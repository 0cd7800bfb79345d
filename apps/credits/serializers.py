from rest_framework import serializers
from .models import CreditTransaction

class CreditTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CreditTransaction
        fields = ['id', 'kind', 'status', 'amount', 'idempotency_key', 'description', 'error_message', 'created_at', 'updated_at']
        read_only_fields = fields
