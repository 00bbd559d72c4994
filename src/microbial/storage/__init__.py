"""Persistence layer: SQLAlchemy models and session management."""

from microbial.storage.db import Database, db, retry_on_conflict
from microbial.storage.models import Base, Campaign, Contact, User

__all__ = ["Base", "Campaign", "Contact", "Database", "User", "db", "retry_on_conflict"]
