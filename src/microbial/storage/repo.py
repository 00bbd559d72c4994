"""Repository layer for data access.

Each repository wraps a session and exposes the document-style operations
the services rely on: ``find_one``, ``find``, ``find_by_id``, ``insert``,
``save`` (apply changes to a row by id) and ``remove``.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from microbial.logging_config import get_logger
from microbial.storage.models import Base, Campaign, Contact, User

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """Generic repository over one model."""

    model: type[ModelT]

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, record_id: str) -> ModelT | None:
        return self.session.get(self.model, record_id)

    def find_one(self, **filters: Any) -> ModelT | None:
        return self.session.scalar(select(self.model).filter_by(**filters).limit(1))

    def find(self, **filters: Any) -> list[ModelT]:
        query = select(self.model).filter_by(**filters).order_by(self.model.created_at)
        return list(self.session.scalars(query))

    def find_by_ids(self, record_ids: list[str]) -> list[ModelT]:
        if not record_ids:
            return []
        return list(self.session.scalars(select(self.model).where(self.model.id.in_(record_ids))))

    def insert(self, record: ModelT) -> ModelT:
        self.session.add(record)
        self.session.flush()
        logger.debug("record_inserted", table=self.model.__tablename__, record_id=record.id)
        return record

    def save(self, record_id: str, values: dict[str, Any]) -> ModelT | None:
        """Apply ``values`` to the stored row with id ``record_id``.

        The row is loaded in this session, so only the given columns change;
        nothing else is written back from an older copy.
        """
        current = self.session.get(self.model, record_id)
        if current is None:
            return None
        for key, value in values.items():
            setattr(current, key, value)
        self.session.flush()
        logger.debug("record_saved", table=self.model.__tablename__, record_id=record_id)
        return current

    def remove(self, record: ModelT) -> None:
        current = self.session.get(self.model, record.id)
        if current is not None:
            self.session.delete(current)
            self.session.flush()
            logger.debug("record_removed", table=self.model.__tablename__, record_id=record.id)


class UserRepository(Repository[User]):
    model = User


class CampaignRepository(Repository[Campaign]):
    model = Campaign

    def find_by_public_code(self, public_code: str) -> Campaign | None:
        return self.find_one(public_code=public_code)


class ContactRepository(Repository[Contact]):
    model = Contact

    def find_by_referral_code(self, referral_code: str) -> Contact | None:
        return self.find_one(referral_code=referral_code)

    def append_referred(self, referrer: Contact, contact_id: str) -> int:
        """Append ``contact_id`` to the referrer's chain and return the new count.

        The UPDATE is checked against the row version read in this session, so
        a concurrent append makes the flush raise ``StaleDataError`` instead of
        overwriting it.
        """
        # Reassign rather than append in place so the JSON column is flagged dirty
        referrer.referred_contacts = [*(referrer.referred_contacts or []), contact_id]
        self.session.flush()
        return len(referrer.referred_contacts)
