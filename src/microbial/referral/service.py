"""Referral chain: contact signup, referrer linking and nudge emails."""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from microbial.email.service import EmailService, email_service
from microbial.errors import UnprocessableEntity, unprocessable_from
from microbial.logging_config import get_logger
from microbial.referral.codes import unique_code
from microbial.storage.db import Database, db, retry_on_conflict
from microbial.storage.models import Campaign, Contact, new_id
from microbial.storage.repo import CampaignRepository, ContactRepository

logger = get_logger(__name__)

# Fields a signing-up contact may submit
SIGNUP_FIELDS = ("name", "email", "mobile", "external_id")


class ReferralService:
    """Registers contacts against campaigns and maintains referral chains.

    The email service is injected so tests can record dispatches instead of
    calling SendGrid.
    """

    def __init__(
        self,
        database: Database | None = None,
        mailer: EmailService | None = None,
    ):
        self.db = database or db
        self.mailer = mailer or email_service
        self.logger = get_logger(__name__)

    def register_contact(
        self,
        campaign_code: str | None,
        fields: dict[str, Any],
        referral_code: str | None = None,
    ) -> Contact:
        """Sign a contact up for a campaign.

        When ``referral_code`` names an existing contact, that contact becomes
        the referrer: the new contact's id is appended to its
        ``referred_contacts`` and persisted before the new contact itself is.
        While the referrer's count stays within the campaign's nudge threshold
        every such signup sends the referrer a nudge. An unknown referral code
        is ignored.

        Args:
            campaign_code: Public code of the campaign
            fields: Submitted contact fields (email required)
            referral_code: Referral code of the referring contact, if any

        Returns:
            The persisted contact, with its own new referral code

        Raises:
            UnprocessableEntity: If the campaign code is missing or unknown,
                or the contact cannot be stored (e.g. the email already
                signed up for this campaign)
        """
        if not campaign_code:
            raise UnprocessableEntity("missing campaign id")

        with self.db.session() as session:
            campaign = CampaignRepository(session).find_by_public_code(campaign_code)
            if campaign is None:
                raise UnprocessableEntity("invalid campaign id")

            candidate = Contact(
                id=new_id(),
                campaign_id=campaign.id,
                campaign_public_code=campaign_code,
                referral_code=unique_code(session, Contact.referral_code),
                referred_contacts=[],
                **{k: v for k, v in fields.items() if k in SIGNUP_FIELDS},
            )

        try:
            if referral_code:
                self._link_referrer(campaign, candidate, referral_code)

            with self.db.session() as session:
                ContactRepository(session).insert(candidate)
        except SQLAlchemyError as e:
            self.logger.info(
                "contact_registration_rejected",
                campaign_id=campaign.id,
                email=candidate.email,
                error=str(e.orig) if hasattr(e, "orig") else str(e),
            )
            raise unprocessable_from(e) from e

        self.logger.info(
            "contact_registered",
            contact_id=candidate.id,
            campaign_id=campaign.id,
            referral_code=candidate.referral_code,
            referred=bool(referral_code),
        )

        self.mailer.send_signup_mail(campaign, candidate)
        return candidate

    @retry_on_conflict
    def _append_to_referrer(self, referral_code: str, contact_id: str) -> tuple[Contact, int] | None:
        """Append ``contact_id`` to the chain of the contact owning ``referral_code``.

        Runs in its own committed session. A concurrent append to the same
        referrer makes the versioned UPDATE fail, and the whole read-append is
        retried against the fresh row.

        Returns:
            The referrer and its referral count as committed, or None if no
            contact has the code
        """
        with self.db.session() as session:
            referrals = ContactRepository(session)
            referrer = referrals.find_by_referral_code(referral_code)
            if referrer is None:
                return None
            referred_count = referrals.append_referred(referrer, contact_id)
        return referrer, referred_count

    def _link_referrer(self, campaign: Campaign, candidate: Contact, referral_code: str) -> None:
        """Link ``candidate`` to its referrer and nudge the referrer if due."""
        linked = self._append_to_referrer(referral_code, candidate.id)
        if linked is None:
            self.logger.info("referral_code_unknown", referral_code=referral_code)
            return

        referrer, referred_count = linked
        self.logger.info(
            "referrer_linked",
            referrer_id=referrer.id,
            contact_id=candidate.id,
            referred_count=referred_count,
        )

        threshold = campaign.nudge_threshold
        if threshold and referred_count <= threshold:
            self.mailer.send_nudge(campaign, referrer, candidate)
            self.logger.info(
                "nudge_dispatched",
                referrer_id=referrer.id,
                referred_count=referred_count,
                threshold=threshold,
            )


# Singleton instance
referral_service = ReferralService()


def get_referral_service() -> ReferralService:
    return referral_service
