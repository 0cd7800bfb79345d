import logging
from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from apps.realtime.broadcaster import broadcaster
from core.exceptions import RemoteServiceError
from .models import Campaign, PlatformConnection
from .publisher import CampaignPublisher, CampaignStateError, CampaignValidationError
from .serializers import (
    CampaignPublishSerializer,
    CampaignSerializer,
    InsightsRequestSerializer,
    PlatformConnectionSerializer,
)

logger = logging.getLogger(__name__)


def enqueue_publish(campaign, activate=False):
    from tasks.publishing import publish_campaign
    transaction.on_commit(lambda: publish_campaign.delay(campaign.pk, activate))


class CampaignViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = CampaignSerializer

    def get_queryset(self):
        return Campaign.objects.filter(owner_id=self.request.user.id)

    def get_publisher(self):
        return CampaignPublisher()

    def create(self, request):
        """Validate the payload, create a pending campaign and publish it in the background"""
        serializer = CampaignPublishSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            campaign = self.get_publisher().start(
                owner_id=request.user.id,
                project_ref=data.get('project_ref', ''),
                campaign_data=data['campaign_data'],
                adset_data=data['adset_data'],
                creative_data=data['creative_data'],
            )
        except CampaignValidationError as exc:
            return Response({
                'error': 'Validation failed',
                'validation_errors': exc.errors,
            }, status=status.HTTP_400_BAD_REQUEST)

        enqueue_publish(campaign, data.get('activate', False))
        return Response(CampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='status')
    def publish_status(self, request, pk=None):
        campaign = self.get_object()
        return Response(broadcaster.latest(campaign.pk, fallback=campaign))

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        return self._delivery_change(self.get_publisher().activate)

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        return self._delivery_change(self.get_publisher().deactivate)

    def _delivery_change(self, operation):
        campaign = self.get_object()
        try:
            campaign = operation(campaign.pk)
        except CampaignStateError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_409_CONFLICT)
        except RemoteServiceError as exc:
            logger.error(f"Delivery change for campaign {campaign.pk} failed: {exc}")
            return Response({'error': str(exc)}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(CampaignSerializer(campaign).data)

    @action(detail=True, methods=['post'])
    def retry(self, request, pk=None):
        campaign = self.get_object()
        try:
            fresh = self.get_publisher().retry(campaign.pk)
        except CampaignStateError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_409_CONFLICT)

        enqueue_publish(fresh)
        return Response(CampaignSerializer(fresh).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def insights(self, request, pk=None):
        serializer = InsightsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        campaign = self.get_object()

        try:
            campaign = self.get_publisher().sync_insights(
                campaign.pk,
                date_from=serializer.validated_data.get('date_from'),
                date_to=serializer.validated_data.get('date_to'),
            )
        except CampaignStateError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_409_CONFLICT)
        except RemoteServiceError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response({
            'insights': campaign.insights,
            'synced_at': campaign.insights_synced_at,
        })


class PlatformConnectionViewSet(mixins.CreateModelMixin,
                                mixins.ListModelMixin,
                                mixins.DestroyModelMixin,
                                viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = PlatformConnectionSerializer

    def get_queryset(self):
        return PlatformConnection.objects.filter(owner_id=self.request.user.id)

    def perform_create(self, serializer):
        PlatformConnection.objects.filter(
            owner_id=self.request.user.id,
            platform=serializer.validated_data.get('platform', 'facebook'),
        ).delete()
        serializer.save(owner_id=self.request.user.id)
