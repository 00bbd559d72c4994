"""Campaign ("outbreak") API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from microbial.auth.middleware import require_auth
from microbial.campaigns.service import CampaignService, get_campaign_service
from microbial.storage.models import DEFAULT_NUDGE_THRESHOLD, User

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


# ==================== MODELS ====================


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    referral_url: str | None = Field(default=None, max_length=1000)
    signup_template_id: str | None = Field(default=None, max_length=100)
    nudge_template_id: str | None = Field(default=None, max_length=100)
    completion_template_id: str | None = Field(default=None, max_length=100)
    nudge_threshold: int = Field(default=DEFAULT_NUDGE_THRESHOLD, ge=0)


class CampaignUpdate(BaseModel):
    """Partial update; only the fields sent are changed."""
    name: str | None = Field(default=None, min_length=1, max_length=255)
    referral_url: str | None = Field(default=None, max_length=1000)
    signup_template_id: str | None = Field(default=None, max_length=100)
    nudge_template_id: str | None = Field(default=None, max_length=100)
    completion_template_id: str | None = Field(default=None, max_length=100)
    nudge_threshold: int | None = Field(default=None, ge=0)


class CampaignCreateRequest(BaseModel):
    campaign: CampaignCreate


class CampaignUpdateRequest(BaseModel):
    campaign: CampaignUpdate


class CampaignResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    referral_url: str | None
    public_code: str
    signup_template_id: str | None
    nudge_template_id: str | None
    completion_template_id: str | None
    nudge_threshold: int
    created_at: datetime
    updated_at: datetime


class CampaignEnvelope(BaseModel):
    campaign: CampaignResponse


class CampaignListEnvelope(BaseModel):
    campaigns: list[CampaignResponse]


# ==================== ENDPOINTS ====================


@router.post("", response_model=CampaignEnvelope)
async def create_campaign(
    body: CampaignCreateRequest,
    user: User = Depends(require_auth),
    service: CampaignService = Depends(get_campaign_service),
):
    """Create a campaign owned by the current user."""
    campaign = service.create_campaign(user.id, body.campaign.model_dump())
    return CampaignEnvelope(campaign=CampaignResponse.model_validate(campaign))


@router.get("", response_model=CampaignListEnvelope)
async def list_campaigns(
    user: User = Depends(require_auth),
    service: CampaignService = Depends(get_campaign_service),
):
    """Get all campaigns."""
    campaigns = service.list_campaigns()
    return CampaignListEnvelope(
        campaigns=[CampaignResponse.model_validate(c) for c in campaigns]
    )


@router.get("/{campaign_id}", response_model=CampaignEnvelope)
async def get_campaign(
    campaign_id: str,
    user: User = Depends(require_auth),
    service: CampaignService = Depends(get_campaign_service),
):
    """Get campaign by id."""
    campaign = service.get_campaign(campaign_id)
    return CampaignEnvelope(campaign=CampaignResponse.model_validate(campaign))


@router.put("/{campaign_id}", response_model=CampaignEnvelope)
async def update_campaign(
    campaign_id: str,
    body: CampaignUpdateRequest,
    user: User = Depends(require_auth),
    service: CampaignService = Depends(get_campaign_service),
):
    """Update a campaign.

    Any authenticated user may update any campaign.
    """
    campaign = service.get_campaign(campaign_id)
    campaign = service.update_campaign(campaign, body.campaign.model_dump(exclude_unset=True))
    return CampaignEnvelope(campaign=CampaignResponse.model_validate(campaign))


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: str,
    user: User = Depends(require_auth),
    service: CampaignService = Depends(get_campaign_service),
):
    """Delete a campaign. Its contacts are kept."""
    campaign = service.get_campaign(campaign_id)
    service.delete_campaign(campaign)
    return {"success": True}
