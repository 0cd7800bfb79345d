# apps/campaigns/states.py
"""
Publishing state machine.

Each state is its own type and only carries the remote ids that exist at that
point, so a ``Completed`` value without an ad id cannot be built. ``transition``
is total: every (state, event) pair either yields the next state or raises
``InvalidTransition``.
"""
from dataclasses import dataclass
from typing import Optional, Union


class InvalidTransition(Exception):
    def __init__(self, state, event):
        super().__init__(f"{type(event).__name__} is not valid in state {state.status}")
        self.state = state
        self.event = event


@dataclass(frozen=True)
class Pending:
    status = 'pending'


@dataclass(frozen=True)
class CampaignCreated:
    campaign_id: str
    status = 'campaign_created'


@dataclass(frozen=True)
class AdSetCreated:
    campaign_id: str
    adset_id: str
    status = 'adset_created'


@dataclass(frozen=True)
class Completed:
    campaign_id: str
    adset_id: str
    creative_id: str
    ad_id: str
    status = 'completed'


@dataclass(frozen=True)
class Failed:
    error_message: str
    campaign_id: Optional[str] = None
    adset_id: Optional[str] = None
    status = 'error'


PublishState = Union[Pending, CampaignCreated, AdSetCreated, Completed, Failed]


# Events

@dataclass(frozen=True)
class RemoteCampaignCreated:
    campaign_id: str


@dataclass(frozen=True)
class RemoteAdSetCreated:
    adset_id: str


@dataclass(frozen=True)
class CreativeAttached:
    creative_id: str
    ad_id: str


@dataclass(frozen=True)
class StepFailed:
    error_message: str


PublishEvent = Union[RemoteCampaignCreated, RemoteAdSetCreated, CreativeAttached, StepFailed]


def transition(state: PublishState, event: PublishEvent) -> PublishState:
    if isinstance(state, (Completed, Failed)):
        raise InvalidTransition(state, event)

    if isinstance(event, StepFailed):
        return Failed(
            error_message=event.error_message,
            campaign_id=getattr(state, 'campaign_id', None),
            adset_id=getattr(state, 'adset_id', None),
        )

    if isinstance(state, Pending) and isinstance(event, RemoteCampaignCreated):
        return CampaignCreated(campaign_id=event.campaign_id)
    if isinstance(state, CampaignCreated) and isinstance(event, RemoteAdSetCreated):
        return AdSetCreated(campaign_id=state.campaign_id, adset_id=event.adset_id)
    if isinstance(state, AdSetCreated) and isinstance(event, CreativeAttached):
        return Completed(
            campaign_id=state.campaign_id,
            adset_id=state.adset_id,
            creative_id=event.creative_id,
            ad_id=event.ad_id,
        )

    raise InvalidTransition(state, event)


def state_of(campaign) -> PublishState:
    """Rebuild the typed state from a stored Campaign row."""
    status = campaign.status
    if status == 'pending':
        return Pending()
    if status == 'campaign_created':
        return CampaignCreated(campaign_id=campaign.remote_campaign_id)
    if status == 'adset_created':
        return AdSetCreated(campaign_id=campaign.remote_campaign_id, adset_id=campaign.remote_adset_id)
    if status == 'completed':
        return Completed(
            campaign_id=campaign.remote_campaign_id,
            adset_id=campaign.remote_adset_id,
            creative_id=campaign.remote_creative_id,
            ad_id=campaign.remote_ad_id,
        )
    if status == 'error':
        return Failed(
            error_message=campaign.error_message or '',
            campaign_id=campaign.remote_campaign_id,
            adset_id=campaign.remote_adset_id,
        )
    raise ValueError(f"Unknown campaign status {status!r}")


def apply_state(campaign, state: PublishState):
    """Copy a state's fields onto the Campaign row (not saved)."""
    campaign.status = state.status
    if isinstance(state, (CampaignCreated, AdSetCreated, Completed)):
        campaign.remote_campaign_id = state.campaign_id
    if isinstance(state, (AdSetCreated, Completed)):
        campaign.remote_adset_id = state.adset_id
    if isinstance(state, Completed):
        campaign.remote_creative_id = state.creative_id
        campaign.remote_ad_id = state.ad_id
        campaign.error_message = None
    if isinstance(state, Failed):
        campaign.error_message = state.error_message
    return campaign
