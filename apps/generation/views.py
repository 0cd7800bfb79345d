import logging
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from .models import GenerationArtifact
from .orchestrator import GenerationOrchestrator
from .providers import GenerationRequest
from .serializers import GenerationArtifactSerializer, GenerationRequestSerializer

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    'insufficient_credits': status.HTTP_402_PAYMENT_REQUIRED,
    'idempotency_conflict': status.HTTP_409_CONFLICT,
    'generation_in_progress': status.HTTP_409_CONFLICT,
}


class GenerationViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = GenerationArtifactSerializer

    def get_queryset(self):
        return GenerationArtifact.objects.filter(owner_id=self.request.user.id).prefetch_related('assets')

    def get_orchestrator(self):
        return GenerationOrchestrator()

    def create(self, request):
        """Spend one credit on a generation; credits are untouched if it fails"""
        serializer = GenerationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self.get_orchestrator().generate(
            owner_id=request.user.id,
            request=GenerationRequest(
                kind=data['kind'],
                payload=data['payload'],
                project_ref=data.get('project_ref', ''),
            ),
            idempotency_key=data.get('idempotency_key') or request.headers.get('Idempotency-Key'),
        )

        if not result.ok:
            http_status = ERROR_STATUS.get(result.error_code, status.HTTP_502_BAD_GATEWAY)
            return Response({
                'error': result.error,
                'code': result.error_code,
                'balance_remaining': result.balance_remaining,
            }, status=http_status)

        return Response({
            'artifact': GenerationArtifactSerializer(result.artifact).data,
            'balance_remaining': result.balance_remaining,
            'reconciliation_required': result.reconciliation_required,
        }, status=status.HTTP_201_CREATED)
