from unittest.mock import AsyncMock, MagicMock, patch

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import User
from django.core.cache import cache
from django.test import TestCase, TransactionTestCase
from rest_framework_simplejwt.tokens import AccessToken

from apps.campaigns.models import Campaign
from apps.realtime.broadcaster import StatusBroadcaster, broadcaster, group_name
from apps.realtime.routing import websocket_urlpatterns


class StatusBroadcasterTest(TestCase):
    def setUp(self):
        cache.clear()
        self.layer = get_channel_layer()
        self.broadcaster = StatusBroadcaster(channel_layer=self.layer)
        self.campaign = Campaign.objects.create(owner_id=1, name='Spring Sale')

    def subscribe(self):
        channel = async_to_sync(self.layer.new_channel)()
        async_to_sync(self.layer.group_add)(group_name(self.campaign.pk), channel)
        return channel

    def test_group_members_receive_full_record(self):
        channel = self.subscribe()

        self.broadcaster.publish(self.campaign)

        event = async_to_sync(self.layer.receive)(channel)
        self.assertEqual(event['type'], 'campaign.status')
        self.assertEqual(event['message']['campaign']['status'], 'pending')
        self.assertEqual(event['message']['campaign']['name'], 'Spring Sale')

    def test_every_observer_sees_the_same_sequence(self):
        first, second = self.subscribe(), self.subscribe()

        self.broadcaster.publish(self.campaign)
        Campaign.objects.filter(pk=self.campaign.pk).update(status='campaign_created')
        self.campaign.refresh_from_db()
        self.broadcaster.publish(self.campaign)

        for channel in (first, second):
            received = [async_to_sync(self.layer.receive)(channel)['message'] for _ in range(2)]
            self.assertEqual([m['sequence'] for m in received], [1, 2])
            self.assertEqual([m['campaign']['status'] for m in received], ['pending', 'campaign_created'])

    def test_latest_matches_last_push(self):
        self.broadcaster.publish(self.campaign)
        pushed = self.broadcaster.publish(self.campaign)

        self.assertEqual(self.broadcaster.latest(self.campaign.pk), pushed)
        self.assertEqual(pushed['sequence'], 2)

    def test_latest_falls_back_to_row(self):
        snapshot = self.broadcaster.latest(self.campaign.pk, fallback=self.campaign)

        self.assertEqual(snapshot['sequence'], 0)
        self.assertEqual(snapshot['campaign']['id'], self.campaign.pk)

    def test_sequence_keeps_growing_after_cache_loss(self):
        self.broadcaster.publish(self.campaign)
        self.broadcaster.publish(self.campaign)
        cache.clear()

        message = self.broadcaster.publish(self.campaign)

        self.assertEqual(message['sequence'], 3)
        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.status_sequence, 3)

    def test_fallback_snapshot_carries_stored_sequence(self):
        self.broadcaster.publish(self.campaign)
        self.broadcaster.publish(self.campaign)
        cache.clear()

        snapshot = self.broadcaster.latest(self.campaign.pk, fallback=Campaign.objects.get(pk=self.campaign.pk))

        self.assertEqual(snapshot['sequence'], 2)

    def test_full_save_after_publish_keeps_counter(self):
        self.broadcaster.publish(self.campaign)
        self.campaign.name = 'Spring Sale EU'
        self.campaign.save()

        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.status_sequence, 1)

    def test_layer_failure_is_swallowed(self):
        layer = MagicMock()
        layer.group_send = AsyncMock(side_effect=ConnectionError('redis down'))

        result = StatusBroadcaster(channel_layer=layer).publish(self.campaign)

        self.assertIsNone(result)


class CampaignStatusConsumerTest(TransactionTestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(username='watcher', password='pw')
        self.campaign = Campaign.objects.create(owner_id=self.user.id, name='Spring Sale')
        self.application = URLRouter(websocket_urlpatterns)

    def communicator(self, token):
        path = f'/ws/campaigns/{self.campaign.pk}/status/'
        if token:
            path = f'{path}?token={token}'
        return WebsocketCommunicator(self.application, path)

    async def test_owner_gets_snapshot_then_updates(self):
        communicator = self.communicator(str(AccessToken.for_user(self.user)))
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        snapshot = await communicator.receive_json_from()
        self.assertEqual(snapshot['type'], 'snapshot')
        self.assertEqual(snapshot['campaign']['status'], 'pending')

        await database_sync_to_async(broadcaster.publish)(self.campaign)
        update = await communicator.receive_json_from()
        self.assertEqual(update['type'], 'status')
        self.assertEqual(update['sequence'], 1)

        await communicator.disconnect()

    async def test_missing_token_is_rejected(self):
        connected, code = await self.communicator(None).connect()

        self.assertFalse(connected)
        self.assertEqual(code, 4001)

    async def test_other_owner_is_rejected(self):
        stranger = await database_sync_to_async(User.objects.create_user)(username='stranger', password='pw')

        connected, code = await self.communicator(str(AccessToken.for_user(stranger))).connect()

        self.assertFalse(connected)
        self.assertEqual(code, 4004)

    def fail_campaign(self):
        Campaign.objects.filter(pk=self.campaign.pk).update(status='error', error_message='Invalid parameter')
        broadcaster.publish(Campaign.objects.get(pk=self.campaign.pk))

    async def test_transition_while_connecting_is_delivered(self):
        read_snapshot = broadcaster.latest

        def snapshot_then_fail(campaign_id, fallback=None):
            snapshot = read_snapshot(campaign_id, fallback=fallback)
            self.fail_campaign()
            return snapshot

        communicator = self.communicator(str(AccessToken.for_user(self.user)))
        with patch.object(broadcaster, 'latest', side_effect=snapshot_then_fail):
            connected, _ = await communicator.connect()
        self.assertTrue(connected)

        snapshot = await communicator.receive_json_from()
        self.assertEqual((snapshot['sequence'], snapshot['campaign']['status']), (0, 'pending'))
        update = await communicator.receive_json_from()
        self.assertEqual((update['sequence'], update['campaign']['status']), (1, 'error'))

        await communicator.disconnect()

    async def test_update_already_in_snapshot_is_not_repeated(self):
        read_snapshot = broadcaster.latest

        def fail_then_snapshot(campaign_id, fallback=None):
            self.fail_campaign()
            return read_snapshot(campaign_id, fallback=fallback)

        communicator = self.communicator(str(AccessToken.for_user(self.user)))
        with patch.object(broadcaster, 'latest', side_effect=fail_then_snapshot):
            connected, _ = await communicator.connect()
        self.assertTrue(connected)

        snapshot = await communicator.receive_json_from()
        self.assertEqual((snapshot['sequence'], snapshot['campaign']['status']), (1, 'error'))
        self.assertTrue(await communicator.receive_nothing())

        await communicator.disconnect()
