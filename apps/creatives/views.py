import logging
from dataclasses import asdict
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from .migration import AssetMigrationPipeline
from .models import ImageAsset
from .serializers import BatchMigrationSerializer, ImageAssetSerializer, MigrationResultSerializer

logger = logging.getLogger(__name__)


class ImageAssetViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ImageAssetSerializer

    def get_queryset(self):
        queryset = ImageAsset.objects.filter(owner_id=self.request.user.id).order_by('-created_at')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def get_pipeline(self):
        return AssetMigrationPipeline()

    @action(detail=True, methods=['post'])
    def migrate(self, request, pk=None):
        """Copy one asset into owned storage now (re-runs on ready assets too)"""
        asset = self.get_object()
        result = self.get_pipeline().migrate_one(asset.pk)
        asset.refresh_from_db()

        return Response({
            'result': MigrationResultSerializer(asdict(result)).data,
            'asset': ImageAssetSerializer(asset).data,
        }, status=status.HTTP_200_OK if result.ok else status.HTTP_502_BAD_GATEWAY)

    @action(detail=False, methods=['post'], url_path='migrate-batch')
    def migrate_batch(self, request):
        serializer = BatchMigrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        owner_id = request.user.id

        asset_ids = serializer.validated_data.get('asset_ids')
        if asset_ids:
            asset_ids = list(
                ImageAsset.objects.filter(owner_id=owner_id, pk__in=asset_ids).values_list('id', flat=True)
            )
        else:
            asset_ids = AssetMigrationPipeline.pending_asset_ids(
                limit=serializer.validated_data.get('batch_size'),
                owner_id=owner_id,
            )

        if not asset_ids:
            return Response({'processed': [], 'count': 0, 'message': 'No pending assets found to process'})

        results = self.get_pipeline().migrate_batch(asset_ids)
        return Response({
            'processed': MigrationResultSerializer([asdict(r) for r in results], many=True).data,
            'count': len(results),
            'ready': sum(1 for r in results if r.ok),
        })
