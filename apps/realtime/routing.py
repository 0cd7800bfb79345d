# apps/realtime/routing.py
from django.urls import re_path
from . import consumer

websocket_urlpatterns = [
    re_path(r'ws/campaigns/(?P<campaign_id>\d+)/status/$', consumer.CampaignStatusConsumer.as_asgi()),
]
