import strawberry
from strawberry.types import Info
from typing import List, Optional
from apps.campaigns.models import Campaign
from apps.credits.ledger import CreditLedger
from .types import CampaignType


def owner_id_from(info):
    user = info.context.request.user
    if not user or not user.is_authenticated:
        raise PermissionError("Authentication required")
    return user.id


@strawberry.type
class CampaignQueries:

    @strawberry.field
    def campaigns(self, info: Info, status: Optional[str] = None) -> List[CampaignType]:
        queryset = Campaign.objects.filter(owner_id=owner_id_from(info))
        if status:
            queryset = queryset.filter(status=status)
        return list(queryset)

    @strawberry.field
    def campaign(self, info: Info, id: int) -> Optional[CampaignType]:
        return Campaign.objects.filter(id=id, owner_id=owner_id_from(info)).first()

    @strawberry.field
    def credit_balance(self, info: Info) -> int:
        return CreditLedger().get_balance(owner_id_from(info))
