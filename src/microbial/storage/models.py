"""Database models - unified model set for users, outbreaks and microbes."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

DEFAULT_NUDGE_THRESHOLD = 5


def new_id() -> str:
    """Generate an opaque record id.

    Ids are assigned by the application so a record's id is known before it
    is flushed.
    """
    return uuid.uuid4().hex


def is_valid_id(value: Any) -> bool:
    """Check that a value is structurally a record id (32 hex chars)."""
    if not isinstance(value, str) or len(value) != 32:
        return False
    try:
        uuid.UUID(hex=value)
    except ValueError:
        return False
    return True


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """Account that owns campaigns.

    Users are provisioned by the operator; the API only verifies their tokens.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class Campaign(Base):
    """Referral campaign ("outbreak") owned by a user."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    referral_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Short slug used in public referral URLs, distinct from the id
    public_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)

    # SendGrid dynamic template ids
    signup_template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    nudge_template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    completion_template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    nudge_threshold: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_NUDGE_THRESHOLD, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name='{self.name}', code={self.public_code})>"


class Contact(Base):
    """Contact ("microbe") signed up under a campaign."""

    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint("email", "campaign_id", name="uq_contact_email_campaign"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    # Plain reference, not a foreign key: contacts outlive their campaign
    campaign_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    campaign_public_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    mobile: Mapped[str | None] = mapped_column(String(50), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    referral_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    # Ids of contacts who signed up with this contact's referral code, in order
    referred_contacts: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Bumped on every UPDATE; a write against a stale row raises StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, email={self.email}, code={self.referral_code})>"
