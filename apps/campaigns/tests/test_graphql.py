from unittest.mock import patch

from django.contrib.auth.models import User
from django.test import TestCase
from rest_framework_simplejwt.tokens import AccessToken

from apps.campaigns.models import Campaign
from apps.credits.models import CreditAccount


class CampaignGraphQLTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='gql', password='pw')
        self.auth = {'HTTP_AUTHORIZATION': f'Bearer {AccessToken.for_user(self.user)}'}
        Campaign.objects.create(owner_id=self.user.id, name='Mine')
        Campaign.objects.create(owner_id=self.user.id + 1, name='Theirs')
        CreditAccount.objects.create(owner_id=self.user.id, balance=7)

    def query(self, query, **headers):
        return self.client.post('/graphql/', {'query': query}, content_type='application/json', **headers)

    def test_campaigns_and_balance_are_scoped_to_token_owner(self):
        response = self.query('{ campaigns { name status } creditBalance }', **self.auth)

        data = response.json()['data']
        self.assertEqual(data['campaigns'], [{'name': 'Mine', 'status': 'pending'}])
        self.assertEqual(data['creditBalance'], 7)

    def test_anonymous_request_is_refused(self):
        response = self.query('{ creditBalance }')

        body = response.json()
        self.assertIsNone(body['data'])
        self.assertIn('Authentication required', body['errors'][0]['message'])

    def test_activate_mutation_goes_through_publisher(self):
        campaign = Campaign.objects.get(name='Mine')
        Campaign.objects.filter(pk=campaign.pk).update(status='completed', delivery_status='active')
        campaign.refresh_from_db()

        with patch('apps.campaigns.graphql.mutations.CampaignPublisher.activate', return_value=campaign) as activate:
            response = self.query(
                f'mutation {{ activateCampaign(id: {campaign.pk}) {{ id deliveryStatus }} }}', **self.auth
            )

        activate.assert_called_once_with(campaign.pk)
        self.assertEqual(response.json()['data']['activateCampaign']['deliveryStatus'], 'active')


class CampaignSchemaTest(TestCase):
    def test_schema_builds_with_all_resolvers(self):
        from core.graphql.schema import schema

        sdl = schema.as_str()

        for field in ('campaigns(', 'campaign(id: Int!)', 'creditBalance: Int!', 'activateCampaign(', 'deactivateCampaign('):
            self.assertIn(field, sdl)
        self.assertNotIn('info:', sdl)
