"""Campaign ("outbreak") service."""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from microbial.errors import InternalError, NotFound, UnprocessableEntity, unprocessable_from
from microbial.logging_config import get_logger
from microbial.referral.codes import unique_code
from microbial.storage.db import Database, db
from microbial.storage.models import Campaign, is_valid_id, new_id
from microbial.storage.repo import CampaignRepository

logger = get_logger(__name__)

# Fields a client may set; owner and public code are fixed at creation
CAMPAIGN_FIELDS = (
    "name",
    "referral_url",
    "signup_template_id",
    "nudge_template_id",
    "completion_template_id",
    "nudge_threshold",
)


class CampaignService:
    """Service for creating and maintaining referral campaigns."""

    def __init__(self, database: Database | None = None):
        self.db = database or db
        self.logger = get_logger(__name__)

    def create_campaign(self, owner_id: str, fields: dict[str, Any]) -> Campaign:
        """Create a campaign owned by ``owner_id``.

        Args:
            owner_id: Id of the authenticated user
            fields: Submitted campaign fields

        Returns:
            Created campaign, with a freshly generated public code

        Raises:
            UnprocessableEntity: If the campaign cannot be stored
        """
        values = {k: v for k, v in fields.items() if k in CAMPAIGN_FIELDS and v is not None}
        if not values.get("name"):
            raise UnprocessableEntity("A campaign needs a name", errors=["name: field required"])

        try:
            with self.db.session() as session:
                campaign = Campaign(
                    id=new_id(),
                    owner_id=owner_id,
                    public_code=unique_code(session, Campaign.public_code),
                    **values,
                )
                CampaignRepository(session).insert(campaign)
        except SQLAlchemyError as e:
            raise unprocessable_from(e) from e

        self.logger.info(
            "campaign_created",
            campaign_id=campaign.id,
            owner_id=owner_id,
            public_code=campaign.public_code,
        )
        return campaign

    def list_campaigns(self) -> list[Campaign]:
        """Get all campaigns."""
        with self.db.session() as session:
            return CampaignRepository(session).find()

    def get_campaign(self, campaign_id: str) -> Campaign:
        """Fetch a campaign by id.

        Raises:
            NotFound: If the id is malformed or no campaign has it
            InternalError: If the lookup itself fails
        """
        if not is_valid_id(campaign_id):
            raise NotFound("Campaign not found")

        try:
            with self.db.session() as session:
                campaign = CampaignRepository(session).find_by_id(campaign_id)
        except SQLAlchemyError as e:
            self.logger.error("campaign_lookup_failed", campaign_id=campaign_id, error=str(e))
            raise InternalError() from e

        if campaign is None:
            raise NotFound("Campaign not found")
        return campaign

    def update_campaign(self, campaign: Campaign, patch: dict[str, Any]) -> Campaign:
        """Apply ``patch`` to a fetched campaign and persist it.

        Only keys present in ``patch`` are touched; the row is reloaded so
        columns outside the patch keep their stored values.
        """
        values = {k: v for k, v in patch.items() if k in CAMPAIGN_FIELDS}
        if "name" in values and not values["name"]:
            raise UnprocessableEntity("A campaign needs a name", errors=["name: field required"])

        try:
            with self.db.session() as session:
                updated = CampaignRepository(session).save(campaign.id, values)
        except SQLAlchemyError as e:
            raise unprocessable_from(e) from e

        if updated is None:
            raise NotFound("Campaign not found")
        campaign = updated

        self.logger.info("campaign_updated", campaign_id=campaign.id, fields=sorted(patch))
        return campaign

    def delete_campaign(self, campaign: Campaign) -> None:
        """Delete a campaign. Its contacts are left in place."""
        with self.db.session() as session:
            CampaignRepository(session).remove(campaign)

        self.logger.info("campaign_deleted", campaign_id=campaign.id)


# Singleton instance
campaign_service = CampaignService()


def get_campaign_service() -> CampaignService:
    return campaign_service
