from celery import shared_task
from django.conf import settings
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)


def publish_lock_key(campaign_id):
    return f"campaign_publish_lock:{campaign_id}"


@shared_task
def publish_campaign(campaign_id, activate=False):
    """Walk one campaign through the publishing steps"""
    from apps.campaigns.publisher import CampaignPublisher

    lock_key = publish_lock_key(campaign_id)
    if not cache.add(lock_key, 'locked', settings.CAMPAIGN_PUBLISH_LOCK_TIMEOUT):
        logger.warning(f"Campaign {campaign_id} is already being published, skipping")
        return {'campaign_id': campaign_id, 'skipped': True}

    try:
        campaign = CampaignPublisher().publish(campaign_id, activate=activate)
    finally:
        cache.delete(lock_key)

    logger.info(f"Publishing task for campaign {campaign_id} finished in {campaign.status}")
    return {
        'campaign_id': campaign.pk,
        'status': campaign.status,
        'error_message': campaign.error_message,
    }


@shared_task
def sync_campaign_insights(campaign_id, date_from=None, date_to=None):
    from apps.campaigns.publisher import CampaignPublisher

    campaign = CampaignPublisher().sync_insights(campaign_id, date_from=date_from, date_to=date_to)
    return {'campaign_id': campaign.pk, 'rows': len(campaign.insights.get('data', []))}
