import strawberry_django
from strawberry import auto
from apps.campaigns.models import Campaign

@strawberry_django.type(Campaign)
class CampaignType:
    id: auto
    owner_id: auto
    project_ref: auto
    name: auto
    status: auto
    delivery_status: auto
    remote_campaign_id: auto
    remote_adset_id: auto
    remote_ad_id: auto
    error_message: auto
    created_at: auto
    updated_at: auto
