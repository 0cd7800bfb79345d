# apps/campaigns/publisher.py
"""
Campaign publishing pipeline.

pending -> campaign_created -> adset_created -> completed, or error from any
non-terminal state. Each step is one remote call (retried by the executor) and
its result is written to the Campaign row and broadcast before the next step
starts, so a re-run resumes from the stored remote ids.
"""
import copy
import logging
from decimal import Decimal

from django.utils import timezone

from apps.realtime.broadcaster import broadcaster as default_broadcaster
from core.exceptions import RemoteServiceError
from core.retry import RetryExecutor
from .facebook import FacebookAdsClient
from .models import Campaign, PlatformConnection
from .states import (
    AdSetCreated,
    CampaignCreated,
    Completed,
    CreativeAttached,
    Failed,
    Pending,
    RemoteAdSetCreated,
    RemoteCampaignCreated,
    StepFailed,
    apply_state,
    state_of,
    transition,
)

logger = logging.getLogger(__name__)

PAGE_ID_PLACEHOLDER = '{{page_id}}'


class CampaignValidationError(Exception):
    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        super().__init__('; '.join(errors))
        self.errors = list(errors)


class CampaignStateError(Exception):
    pass


def validate_campaign_payload(campaign_data, adset_data, creative_data):
    errors = []

    if not campaign_data:
        errors.append("Campaign data is missing")
    else:
        if not campaign_data.get('name'):
            errors.append("Campaign name is required")
        if not campaign_data.get('objective'):
            errors.append("Campaign objective is required")

    if not adset_data:
        errors.append("Ad Set data is missing")
    else:
        if not adset_data.get('name'):
            errors.append("Ad Set name is required")
        if not adset_data.get('daily_budget'):
            errors.append("Ad Set budget is required")
        if not adset_data.get('targeting'):
            errors.append("Ad Set targeting is required")

    if not creative_data:
        errors.append("Ad Creative data is missing")
    elif not creative_data.get('object_story_spec'):
        errors.append("Ad Creative story spec is missing")

    return errors


def budget_in_minor_units(value):
    """Numbers are major currency units; strings are already minor units."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return value
    return int(round(Decimal(str(value)) * 100))


def default_client_factory(connection):
    return FacebookAdsClient.for_connection(connection)


class CampaignPublisher:
    def __init__(self, client_factory=None, executor=None, broadcaster=None):
        self.client_factory = client_factory or default_client_factory
        self.executor = executor or RetryExecutor()
        self.broadcaster = broadcaster or default_broadcaster

    @staticmethod
    def get_connection(owner_id):
        return PlatformConnection.objects.filter(owner_id=owner_id, platform='facebook').first()

    def start(self, owner_id, project_ref, campaign_data, adset_data, creative_data):
        """Validate the request and create the pending Campaign row."""
        errors = validate_campaign_payload(campaign_data, adset_data, creative_data)
        if errors:
            raise CampaignValidationError(errors)

        connection = self.get_connection(owner_id)
        if connection is None or not connection.access_token or not connection.ad_account_id:
            raise CampaignValidationError("Facebook account not connected")

        campaign = Campaign.objects.create(
            owner_id=owner_id,
            project_ref=project_ref or '',
            name=campaign_data['name'],
            payload={
                'campaign': campaign_data,
                'adset': adset_data,
                'creative': creative_data,
            },
        )
        logger.info(f"Campaign {campaign.pk} created for owner {owner_id}, waiting to publish")
        self.broadcaster.publish(campaign)
        return campaign

    def publish(self, campaign_id, activate=False):
        campaign = Campaign.objects.get(pk=campaign_id)
        if campaign.is_terminal:
            logger.info(f"Campaign {campaign.pk} already {campaign.status}, nothing to publish")
            return campaign

        state = state_of(campaign)
        connection = self.get_connection(campaign.owner_id)
        if connection is None:
            return self._commit(campaign, transition(state, StepFailed("Facebook account not connected")))

        client = self.client_factory(connection)
        while not isinstance(state, (Completed, Failed)):
            try:
                event = self._run_step(client, connection, campaign, state)
            except (RemoteServiceError, CampaignValidationError) as exc:
                logger.error(f"Campaign {campaign.pk} failed in {state.status}: {exc}")
                event = StepFailed(str(exc))
            state = transition(state, event)
            campaign = self._commit(campaign, state)

        if activate and isinstance(state, Completed):
            try:
                campaign = self.activate(campaign.pk)
            except RemoteServiceError as exc:
                logger.error(f"Campaign {campaign.pk} published but activation failed: {exc}")
        return campaign

    def _run_step(self, client, connection, campaign, state):
        payload = campaign.payload

        if isinstance(state, Pending):
            remote_id = self.executor.call(client.create_campaign, payload['campaign'])
            return RemoteCampaignCreated(campaign_id=remote_id)

        if isinstance(state, CampaignCreated):
            adset_data = dict(payload['adset'])
            adset_data['daily_budget'] = budget_in_minor_units(adset_data['daily_budget'])
            remote_id = self.executor.call(client.create_adset, state.campaign_id, adset_data)
            return RemoteAdSetCreated(adset_id=remote_id)

        if isinstance(state, AdSetCreated):
            creative_id = campaign.remote_creative_id
            if not creative_id:
                creative_data = self._resolve_creative(payload['creative'], connection)
                creative_id = self.executor.call(client.create_creative, creative_data)
                campaign.remote_creative_id = creative_id
                campaign.save(update_fields=['remote_creative_id', 'updated_at'])
            ad_id = self.executor.call(
                client.create_ad,
                f"Ad for {campaign.name}",
                state.adset_id,
                creative_id,
            )
            return CreativeAttached(creative_id=creative_id, ad_id=ad_id)

        raise CampaignStateError(f"No publishing step for state {state.status}")

    @staticmethod
    def _resolve_creative(creative_data, connection):
        creative_data = copy.deepcopy(creative_data)
        story = creative_data.get('object_story_spec') or {}
        if story.get('page_id') == PAGE_ID_PLACEHOLDER:
            if not connection.page_id:
                raise CampaignValidationError("No Facebook page ID available")
            story['page_id'] = connection.page_id
        return creative_data

    def _commit(self, campaign, state):
        apply_state(campaign, state)
        campaign.save()
        logger.info(f"Campaign {campaign.pk} is now {campaign.status}")
        self.broadcaster.publish(campaign)
        return campaign

    def retry(self, campaign_id):
        """Start a fresh attempt from a failed campaign; the failed row is kept."""
        failed = Campaign.objects.get(pk=campaign_id)
        if failed.status != 'error':
            raise CampaignStateError(f"Only failed campaigns can be retried (campaign is {failed.status})")

        campaign = Campaign.objects.create(
            owner_id=failed.owner_id,
            project_ref=failed.project_ref,
            name=failed.name,
            payload=copy.deepcopy(failed.payload),
            retry_of=failed,
        )
        logger.info(f"Campaign {campaign.pk} created as retry of {failed.pk}")
        self.broadcaster.publish(campaign)
        return campaign

    def activate(self, campaign_id):
        return self._set_delivery(campaign_id, 'ACTIVE')

    def deactivate(self, campaign_id):
        return self._set_delivery(campaign_id, 'PAUSED')

    def _set_delivery(self, campaign_id, remote_status):
        campaign = Campaign.objects.get(pk=campaign_id)
        if campaign.status != 'completed':
            raise CampaignStateError(
                f"Campaign must be completed before changing delivery (campaign is {campaign.status})"
            )

        client = self._client_for(campaign)
        self.executor.call(client.update_status, campaign.remote_campaign_id, remote_status)
        if campaign.remote_adset_id:
            self.executor.call(client.update_status, campaign.remote_adset_id, remote_status)

        campaign.delivery_status = remote_status.lower()
        campaign.save(update_fields=['delivery_status', 'updated_at'])
        logger.info(f"Campaign {campaign.pk} delivery set to {campaign.delivery_status}")
        self.broadcaster.publish(campaign)
        return campaign

    def sync_insights(self, campaign_id, date_from=None, date_to=None):
        campaign = Campaign.objects.get(pk=campaign_id)
        if not campaign.remote_campaign_id:
            raise CampaignStateError("Campaign has not been published to Facebook")

        client = self._client_for(campaign)
        insights = self.executor.call(client.get_insights, campaign.remote_campaign_id, date_from, date_to)

        campaign.insights = insights
        campaign.insights_synced_at = timezone.now()
        campaign.save(update_fields=['insights', 'insights_synced_at', 'updated_at'])
        logger.info(f"Synced {len(insights.get('data', []))} insight row(s) for campaign {campaign.pk}")
        return campaign

    def _client_for(self, campaign):
        connection = self.get_connection(campaign.owner_id)
        if connection is None:
            raise CampaignStateError("Facebook account not connected")
        return self.client_factory(connection)
