import json
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

from apps.campaigns.models import Campaign
from .broadcaster import broadcaster, group_name

logger = logging.getLogger(__name__)


class CampaignStatusConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        self.campaign_id = int(self.scope['url_route']['kwargs']['campaign_id'])
        self.room_group_name = None
        self.last_sequence = 0

        # JWT Authentication
        token = self.get_token_from_scope()
        self.user = await self.authenticate_token(token)

        if not self.user:
            await self.close(code=4001)
            return

        # Join before reading the snapshot so no transition falls between the two
        self.room_group_name = group_name(self.campaign_id)
        await self.channel_layer.group_add(self.room_group_name, self.channel_name)

        snapshot = await self.get_snapshot()
        if snapshot is None:
            await self.channel_layer.group_discard(self.room_group_name, self.channel_name)
            self.room_group_name = None
            await self.close(code=4004)
            return

        self.last_sequence = snapshot['sequence']
        await self.accept()
        await self.send(text_data=json.dumps({'type': 'snapshot', **snapshot}))

    async def disconnect(self, close_code):
        if self.room_group_name:
            await self.channel_layer.group_discard(self.room_group_name, self.channel_name)

    async def campaign_status(self, event):
        message = event['message']
        if message['sequence'] <= self.last_sequence:
            # Already part of the snapshot this observer got
            return
        self.last_sequence = message['sequence']
        await self.send(text_data=json.dumps({'type': 'status', **message}))

    def get_token_from_scope(self):
        query_string = self.scope.get('query_string', b'').decode()
        return parse_qs(query_string).get('token', [None])[0]

    @database_sync_to_async
    def authenticate_token(self, token):
        if not token:
            return None
        try:
            jwt_auth = JWTAuthentication()
            validated_token = jwt_auth.get_validated_token(token.encode())
            return jwt_auth.get_user(validated_token)
        except (InvalidToken, TokenError, AuthenticationFailed) as exc:
            logger.info(f"Rejected status subscription for campaign {self.campaign_id}: {exc}")
            return None

    @database_sync_to_async
    def get_snapshot(self):
        campaign = Campaign.objects.filter(pk=self.campaign_id, owner_id=self.user.id).first()
        if campaign is None:
            return None
        return broadcaster.latest(campaign.pk, fallback=campaign)
