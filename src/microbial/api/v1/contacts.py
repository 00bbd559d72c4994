"""Contact ("microbe") API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from microbial.api.rate_limit import limiter
from microbial.auth.middleware import require_auth
from microbial.contacts.service import ContactService, get_contact_service
from microbial.referral.service import ReferralService, get_referral_service
from microbial.settings import settings
from microbial.storage.models import User

router = APIRouter(prefix="/contacts", tags=["contacts"])


# ==================== MODELS ====================


class ContactSignup(BaseModel):
    """Public signup for a campaign."""
    campaign_code: str | None = None  # Campaign public code
    email: EmailStr
    name: str | None = Field(default=None, max_length=255)
    mobile: str | None = Field(default=None, max_length=50)
    external_id: str | None = Field(default=None, max_length=255)
    code: str | None = None  # Referrer's referral code; unknown codes are ignored


class ContactUpdate(BaseModel):
    """Partial update; only the fields sent are changed."""
    email: EmailStr | None = None
    name: str | None = Field(default=None, max_length=255)
    mobile: str | None = Field(default=None, max_length=50)
    external_id: str | None = Field(default=None, max_length=255)


class ContactSignupRequest(BaseModel):
    contact: ContactSignup


class ContactUpdateRequest(BaseModel):
    contact: ContactUpdate


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    campaign_id: str
    campaign_public_code: str | None
    name: str | None
    email: str
    mobile: str | None
    external_id: str | None
    referral_code: str
    referred_contacts: list[str]
    created_at: datetime
    updated_at: datetime


class ContactListItem(ContactResponse):
    """Listed contact with the contacts it referred expanded."""
    referred: list[ContactResponse]


class ContactEnvelope(BaseModel):
    contact: ContactResponse


class ContactListEnvelope(BaseModel):
    contacts: list[ContactListItem]


# ==================== ENDPOINTS ====================


@router.post("", response_model=ContactEnvelope)
@limiter.limit(settings.signup_rate_limit)
async def register_contact(
    request: Request,
    body: ContactSignupRequest,
    service: ReferralService = Depends(get_referral_service),
):
    """Sign up for a campaign, optionally with a referrer's code.

    Public endpoint; no token required.
    """
    signup = body.contact
    contact = service.register_contact(
        signup.campaign_code,
        signup.model_dump(include={"email", "name", "mobile", "external_id"}, exclude_none=True),
        referral_code=signup.code,
    )
    return ContactEnvelope(contact=ContactResponse.model_validate(contact))


@router.get("", response_model=ContactListEnvelope)
async def list_contacts(
    campaign_id: str | None = None,
    user: User = Depends(require_auth),
    service: ContactService = Depends(get_contact_service),
):
    """Get all contacts, optionally filtered by campaign.

    Each contact carries its referred contacts as full records under
    ``referred``, in referral order.
    """
    contacts = service.list_contacts(campaign_id=campaign_id)
    referred = service.referred_by(contacts)
    return ContactListEnvelope(
        contacts=[
            ContactListItem(
                **ContactResponse.model_validate(c).model_dump(),
                referred=[
                    ContactResponse.model_validate(referred[i])
                    for i in c.referred_contacts
                    if i in referred
                ],
            )
            for c in contacts
        ]
    )


@router.get("/{contact_id}", response_model=ContactEnvelope)
async def get_contact(
    contact_id: str,
    user: User = Depends(require_auth),
    service: ContactService = Depends(get_contact_service),
):
    """Get contact by id."""
    contact = service.get_contact(contact_id)
    return ContactEnvelope(contact=ContactResponse.model_validate(contact))


@router.put("/{contact_id}", response_model=ContactEnvelope)
async def update_contact(
    contact_id: str,
    body: ContactUpdateRequest,
    user: User = Depends(require_auth),
    service: ContactService = Depends(get_contact_service),
):
    """Update a contact's details."""
    contact = service.get_contact(contact_id)
    contact = service.update_contact(contact, body.contact.model_dump(exclude_unset=True))
    return ContactEnvelope(contact=ContactResponse.model_validate(contact))


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: str,
    user: User = Depends(require_auth),
    service: ContactService = Depends(get_contact_service),
):
    """Delete a contact."""
    contact = service.get_contact(contact_id)
    service.delete_contact(contact)
    return {"success": True}
