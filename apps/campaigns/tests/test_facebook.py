from unittest.mock import MagicMock

import requests
from django.test import TestCase

from apps.campaigns.facebook import FacebookAdsClient
from core.exceptions import PlatformAPIError


def response(status_code=200, body=None):
    resp = MagicMock(ok=status_code < 400, status_code=status_code, text=str(body))
    resp.json.return_value = body if body is not None else {}
    return resp


class FacebookAdsClientTest(TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.client = FacebookAdsClient(
            'token-1', '12345', base_url='https://graph.test/v18.0', session=self.session,
        )

    def test_create_campaign_posts_to_account_edge(self):
        self.session.request.return_value = response(200, {'id': 'c-1'})

        campaign_id = self.client.create_campaign({'name': 'Sale', 'objective': 'OUTCOME_TRAFFIC'})

        self.assertEqual(campaign_id, 'c-1')
        method, url = self.session.request.call_args[0]
        kwargs = self.session.request.call_args[1]
        self.assertEqual((method, url), ('POST', 'https://graph.test/v18.0/act_12345/campaigns'))
        self.assertEqual(kwargs['json']['status'], 'PAUSED')
        self.assertEqual(kwargs['json']['special_ad_categories'], [])
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer token-1')

    def test_missing_id_is_an_error(self):
        self.session.request.return_value = response(200, {'success': True})

        with self.assertRaises(PlatformAPIError) as ctx:
            self.client.create_ad('Ad', 'as-1', 'cr-1')

        self.assertFalse(ctx.exception.retriable)

    def test_invalid_parameter_is_not_retriable(self):
        self.session.request.return_value = response(400, {
            'error': {'message': 'Invalid parameter', 'code': 100, 'error_user_msg': 'Budget is too low'},
        })

        with self.assertRaises(PlatformAPIError) as ctx:
            self.client.create_adset('c-1', {'name': 'a', 'daily_budget': 100, 'targeting': {}})

        self.assertEqual(ctx.exception.code, 100)
        self.assertIn('Budget is too low', str(ctx.exception))
        self.assertFalse(ctx.exception.retriable)

    def test_rate_limit_is_retriable(self):
        self.session.request.return_value = response(400, {'error': {'message': 'User request limit reached', 'code': 17}})

        with self.assertRaises(PlatformAPIError) as ctx:
            self.client.update_status('c-1', 'ACTIVE')

        self.assertTrue(ctx.exception.retriable)

    def test_transport_error_is_retriable(self):
        self.session.request.side_effect = requests.Timeout('read timeout')

        with self.assertRaises(PlatformAPIError) as ctx:
            self.client.get_insights('c-1')

        self.assertTrue(ctx.exception.retriable)

    def test_insights_query(self):
        self.session.request.return_value = response(200, {'data': [{'impressions': '10'}]})

        result = self.client.get_insights('c-1', date_from='2026-01-01', date_to='2026-01-31')

        self.assertEqual(result['data'], [{'impressions': '10'}])
        params = self.session.request.call_args[1]['params']
        self.assertEqual(params['level'], 'campaign')
        self.assertIn('"since": "2026-01-01"', params['time_range'])
        self.assertTrue(params['fields'].startswith('campaign_id,campaign_name,'))
