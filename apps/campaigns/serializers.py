from rest_framework import serializers
from .models import Campaign, PlatformConnection

CAMPAIGN_FIELDS = [
    'id', 'owner_id', 'project_ref', 'name', 'status', 'delivery_status',
    'remote_campaign_id', 'remote_adset_id', 'remote_creative_id', 'remote_ad_id',
    'error_message', 'retry_of', 'created_at', 'updated_at',
]

class CampaignStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Campaign
        fields = CAMPAIGN_FIELDS
        read_only_fields = fields

class CampaignSerializer(serializers.ModelSerializer):
    owner_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Campaign
        fields = CAMPAIGN_FIELDS + ['payload', 'insights', 'insights_synced_at']
        read_only_fields = fields

class CampaignPublishSerializer(serializers.Serializer):
    """Request body of POST /campaigns/; field-level checks live in the publisher"""
    project_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    campaign_data = serializers.JSONField()
    adset_data = serializers.JSONField()
    creative_data = serializers.JSONField()
    activate = serializers.BooleanField(required=False, default=False)

class InsightsRequestSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        if attrs.get('date_from') and attrs.get('date_to') and attrs['date_from'] > attrs['date_to']:
            raise serializers.ValidationError("date_from must be before date_to")
        return attrs

class PlatformConnectionSerializer(serializers.ModelSerializer):
    owner_id = serializers.IntegerField(read_only=True)
    access_token = serializers.CharField(write_only=True)

    class Meta:
        model = PlatformConnection
        fields = ['id', 'owner_id', 'platform', 'access_token', 'ad_account_id', 'page_id', 'created_at', 'updated_at']
