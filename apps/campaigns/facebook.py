# apps/campaigns/facebook.py
import json
import logging
from datetime import timedelta

import requests
from django.conf import settings
from django.utils import timezone

from core.exceptions import PlatformAPIError

logger = logging.getLogger(__name__)

# Graph API throttling codes; the call succeeds once the window passes
RATE_LIMIT_CODES = {4, 17, 32, 613}
TEMPORARY_CODES = {1, 2}

DEFAULT_INSIGHT_FIELDS = [
    'impressions', 'reach', 'clicks', 'ctr', 'cpc', 'spend', 'actions',
]


def parse_error(response):
    """Turn a Graph API error response into PlatformAPIError."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get('error', {}) if isinstance(body, dict) else {}

    code = error.get('code')
    message = error.get('error_user_msg') or error.get('message') or response.text[:500]
    transient = bool(error.get('is_transient')) or code in RATE_LIMIT_CODES or code in TEMPORARY_CODES
    if isinstance(code, int) and 80000 <= code <= 80014:
        transient = True

    return PlatformAPIError(
        f"Facebook API error ({response.status_code}): {message}",
        status_code=response.status_code,
        code=code,
        transient=transient,
        payload=body,
    )


class FacebookAdsClient:
    """Thin Marketing API client; one instance per platform connection."""

    def __init__(self, access_token, ad_account_id, base_url=None, timeout=None, session=None):
        self.access_token = access_token
        self.account_path = ad_account_id if ad_account_id.startswith('act_') else f"act_{ad_account_id}"
        self.base_url = (base_url or settings.FACEBOOK_GRAPH_API_URL).rstrip('/')
        self.timeout = timeout or settings.REMOTE_REQUEST_TIMEOUT
        self.session = session or requests.Session()

    @classmethod
    def for_connection(cls, connection, **kwargs):
        return cls(connection.access_token, connection.ad_account_id, **kwargs)

    def _request(self, method, path, payload=None, params=None):
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {'Authorization': f'Bearer {self.access_token}'}
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PlatformAPIError(f"Facebook API unreachable: {exc}") from exc

        if not response.ok:
            error = parse_error(response)
            logger.warning(f"{method} {path} failed: {error}")
            raise error

        try:
            return response.json()
        except ValueError as exc:
            raise PlatformAPIError(
                f"Facebook API returned a non-JSON body for {path}",
                status_code=response.status_code,
            ) from exc

    def _create(self, edge, payload):
        data = self._request('POST', f"{self.account_path}/{edge}", payload=payload)
        object_id = data.get('id')
        if not object_id:
            raise PlatformAPIError(f"Failed to create {edge}, no ID returned", status_code=200, payload=data)
        logger.info(f"Created Facebook {edge} object {object_id}")
        return object_id

    def create_campaign(self, campaign_data):
        return self._create('campaigns', {
            'name': campaign_data['name'],
            'objective': campaign_data['objective'],
            'status': campaign_data.get('status', 'PAUSED'),
            'special_ad_categories': campaign_data.get('special_ad_categories', []),
        })

    def create_adset(self, campaign_id, adset_data):
        payload = {
            'name': adset_data['name'],
            'campaign_id': campaign_id,
            'daily_budget': adset_data['daily_budget'],
            'billing_event': adset_data.get('billing_event', 'IMPRESSIONS'),
            'optimization_goal': adset_data.get('optimization_goal', 'REACH'),
            'targeting': adset_data['targeting'],
            'status': adset_data.get('status', 'PAUSED'),
        }
        if adset_data.get('bid_amount') is not None:
            payload['bid_amount'] = adset_data['bid_amount']
        return self._create('adsets', payload)

    def create_creative(self, creative_data):
        return self._create('adcreatives', creative_data)

    def create_ad(self, name, adset_id, creative_id, status='PAUSED'):
        return self._create('ads', {
            'name': name,
            'adset_id': adset_id,
            'creative': {'creative_id': creative_id},
            'status': status,
        })

    def update_status(self, object_id, status):
        data = self._request('POST', object_id, payload={'status': status})
        logger.info(f"Set Facebook object {object_id} to {status}")
        return data

    def get_insights(self, campaign_id, date_from=None, date_to=None, fields=None):
        today = timezone.now().date()
        since = date_from or (today - timedelta(days=30)).isoformat()
        until = date_to or today.isoformat()
        fields = fields or DEFAULT_INSIGHT_FIELDS
        data = self._request('GET', f"{campaign_id}/insights", params={
            'fields': ','.join(['campaign_id', 'campaign_name', *fields]),
            'time_range': json.dumps({'since': str(since), 'until': str(until)}),
            'level': 'campaign',
        })
        return {
            'data': data.get('data', []),
            'date_from': str(since),
            'date_to': str(until),
        }
