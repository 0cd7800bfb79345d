from django.contrib import admin
from .models import Campaign, PlatformConnection


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ('id', 'owner_id', 'name', 'status', 'delivery_status', 'remote_campaign_id', 'created_at')
    list_filter = ('status', 'delivery_status')
    search_fields = ('name', 'remote_campaign_id')
    readonly_fields = ('status', 'remote_campaign_id', 'remote_adset_id', 'remote_creative_id', 'remote_ad_id')


@admin.register(PlatformConnection)
class PlatformConnectionAdmin(admin.ModelAdmin):
    list_display = ('id', 'owner_id', 'platform', 'ad_account_id', 'page_id')
