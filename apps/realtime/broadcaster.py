# apps/realtime/broadcaster.py
"""
Fan-out of campaign status snapshots.

Push observers sit in the channel-layer group ``campaign_<id>_status``; polling
observers read the last snapshot from the cache. Both get the same record with
the same ``sequence`` number. The counter is stored on the Campaign row, so it
only grows even after the cache entry is gone.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import F

logger = logging.getLogger(__name__)

MESSAGE_TYPE = 'campaign.status'


def group_name(campaign_id):
    return f'campaign_{campaign_id}_status'


def snapshot_key(campaign_id):
    return f'campaign_status:{campaign_id}:snapshot'


def serialize_campaign(campaign):
    from apps.campaigns.serializers import CampaignStatusSerializer
    return dict(CampaignStatusSerializer(campaign).data)


class StatusBroadcaster:
    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def next_sequence(self, campaign):
        from apps.campaigns.models import Campaign

        with transaction.atomic():
            Campaign.objects.filter(pk=campaign.pk).update(status_sequence=F('status_sequence') + 1)
            sequence = Campaign.objects.filter(pk=campaign.pk).values_list('status_sequence', flat=True).get()
        # Keep a later full save() from writing the old counter back
        campaign.status_sequence = sequence
        return sequence

    def publish(self, campaign):
        """Send the full campaign record to every observer. Never raises."""
        try:
            message = {
                'campaign_id': campaign.pk,
                'sequence': self.next_sequence(campaign),
                'campaign': serialize_campaign(campaign),
            }
            cache.set(snapshot_key(campaign.pk), message, settings.CAMPAIGN_STATUS_CACHE_TIMEOUT)
            async_to_sync(self.channel_layer.group_send)(
                group_name(campaign.pk),
                {'type': MESSAGE_TYPE, 'message': message},
            )
        except Exception as exc:
            logger.error(f"Status broadcast for campaign {campaign.pk} failed: {exc}")
            return None

        logger.debug(f"Broadcast campaign {campaign.pk} status {campaign.status} (seq {message['sequence']})")
        return message

    def latest(self, campaign_id, fallback=None):
        """Latest snapshot; built from ``fallback`` (a Campaign row) after cache loss."""
        message = cache.get(snapshot_key(campaign_id))
        if message is None and fallback is not None:
            message = {
                'campaign_id': fallback.pk,
                'sequence': fallback.status_sequence,
                'campaign': serialize_campaign(fallback),
            }
        return message


broadcaster = StatusBroadcaster()
