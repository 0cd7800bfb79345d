import strawberry
from strawberry.types import Info
from apps.campaigns.models import Campaign
from apps.campaigns.publisher import CampaignPublisher
from .queries import owner_id_from
from .types import CampaignType

@strawberry.type
class CampaignMutations:

    @strawberry.mutation
    def activate_campaign(self, info: Info, id: int) -> CampaignType:
        campaign = Campaign.objects.get(id=id, owner_id=owner_id_from(info))
        return CampaignPublisher().activate(campaign.pk)

    @strawberry.mutation
    def deactivate_campaign(self, info: Info, id: int) -> CampaignType:
        campaign = Campaign.objects.get(id=id, owner_id=owner_id_from(info))
        return CampaignPublisher().deactivate(campaign.pk)
