"""Contact ("microbe") service: reads, updates and removals.

Registration lives in :mod:`microbial.referral.service`, since it drives the
referral chain.
"""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from microbial.errors import InternalError, NotFound, unprocessable_from
from microbial.logging_config import get_logger
from microbial.storage.db import Database, db, retry_on_conflict
from microbial.storage.models import Contact, is_valid_id
from microbial.storage.repo import ContactRepository

logger = get_logger(__name__)

# Referral code, referral list and campaign are managed by the referral chain
CONTACT_FIELDS = ("name", "email", "mobile", "external_id")


class ContactService:
    """Service for looking up and maintaining contacts."""

    def __init__(self, database: Database | None = None):
        self.db = database or db

    def list_contacts(self, campaign_id: str | None = None) -> list[Contact]:
        """Get all contacts, optionally only those of one campaign."""
        with self.db.session() as session:
            repo = ContactRepository(session)
            if campaign_id:
                return repo.find(campaign_id=campaign_id)
            return repo.find()

    def referred_by(self, contacts: list[Contact]) -> dict[str, Contact]:
        """Load every contact referred by ``contacts`` in one query, keyed by id.

        Ids whose contact no longer exists (or was never stored) are absent.
        """
        referred_ids = {i for c in contacts for i in (c.referred_contacts or [])}
        with self.db.session() as session:
            return {c.id: c for c in ContactRepository(session).find_by_ids(sorted(referred_ids))}

    def get_contact(self, contact_id: str) -> Contact:
        """Fetch a contact by id.

        Raises:
            NotFound: If the id is malformed or no contact has it
            InternalError: If the lookup itself fails
        """
        if not is_valid_id(contact_id):
            raise NotFound("Contact not found")

        try:
            with self.db.session() as session:
                contact = ContactRepository(session).find_by_id(contact_id)
        except SQLAlchemyError as e:
            logger.error("contact_lookup_failed", contact_id=contact_id, error=str(e))
            raise InternalError() from e

        if contact is None:
            raise NotFound("Contact not found")
        return contact

    def update_contact(self, contact: Contact, patch: dict[str, Any]) -> Contact:
        """Apply ``patch`` to a fetched contact and persist it.

        Only the patched columns are written, so a referral appended since
        ``contact`` was fetched is kept.

        Raises:
            NotFound: If the contact was removed in the meantime
            UnprocessableEntity: If the change violates a constraint
        """
        values = {k: v for k, v in patch.items() if k in CONTACT_FIELDS}

        try:
            updated = self._apply(contact.id, values)
        except SQLAlchemyError as e:
            raise unprocessable_from(e) from e

        if updated is None:
            raise NotFound("Contact not found")
        contact = updated

        logger.info("contact_updated", contact_id=contact.id, fields=sorted(patch))
        return contact

    @retry_on_conflict
    def _apply(self, contact_id: str, values: dict[str, Any]) -> Contact | None:
        with self.db.session() as session:
            return ContactRepository(session).save(contact_id, values)

    def delete_contact(self, contact: Contact) -> None:
        with self.db.session() as session:
            ContactRepository(session).remove(contact)

        logger.info("contact_deleted", contact_id=contact.id)


# Singleton instance
contact_service = ContactService()


def get_contact_service() -> ContactService:
    return contact_service
