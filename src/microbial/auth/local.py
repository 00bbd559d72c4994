"""Local authentication service: password hashing and JWT verification."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from microbial.errors import Unauthorized
from microbial.logging_config import get_logger
from microbial.settings import settings
from microbial.storage.db import Database, db
from microbial.storage.models import User, new_id
from microbial.storage.repo import UserRepository

logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT settings
JWT_SECRET_KEY = settings.jwt_secret_key
JWT_ALGORITHM = settings.jwt_algorithm
JWT_EXPIRE_HOURS = settings.jwt_expire_hours


class LocalAuthService:
    """Authentication service for locally provisioned users."""

    def __init__(self, database: Database | None = None):
        """Initialize auth service.

        Args:
            database: Database to resolve users from (defaults to the global one)
        """
        self.db = database or db
        self.logger = get_logger(__name__)

    # ==================== PASSWORD ====================

    def _truncate_password(self, password: str) -> str:
        """Truncate password to 72 bytes (bcrypt limit)."""
        return password.encode("utf-8")[:72].decode("utf-8", errors="ignore")

    def hash_password(self, password: str) -> str:
        return pwd_context.hash(self._truncate_password(password))

    # ==================== USER MANAGEMENT ====================

    def create_user(
        self,
        email: str,
        password: str,
        name: str | None = None,
    ) -> User:
        """Create a new user.

        Args:
            email: User email
            password: Plain password
            name: Optional name

        Returns:
            Created user

        Raises:
            ValueError: If email already exists
        """
        with self.db.session() as session:
            users = UserRepository(session)
            existing = users.find_one(email=email.lower())

            if existing:
                raise ValueError("Email already registered")

            user = User(
                id=new_id(),
                email=email.lower(),
                name=name,
                password_hash=self.hash_password(password),
            )
            users.insert(user)

            self.logger.info("user_created", user_id=user.id, email=user.email)
            return user

    def get_user_by_id(self, user_id: str) -> User | None:
        """Get an active user by ID."""
        with self.db.session() as session:
            return UserRepository(session).find_one(id=user_id, is_active=True)

    # ==================== JWT TOKENS ====================

    def create_access_token(
        self,
        user: User,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create JWT access token.

        Args:
            user: User account
            expires_delta: Optional expiration time

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = timedelta(hours=JWT_EXPIRE_HOURS)

        now = datetime.utcnow()
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "exp": now + expires_delta,
            "iat": now,
        }
        return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict[str, Any] | None:
        """Verify and decode JWT token.

        Args:
            token: JWT token string

        Returns:
            Token payload or None if invalid
        """
        try:
            return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            self.logger.debug("token_verification_failed", error=str(e))
            return None

    def authenticate(self, token: str | None) -> User:
        """Resolve a bearer credential to its user.

        Every call decodes the token and looks the subject up again.

        Args:
            token: Raw token string, or None when the request carried none

        Returns:
            The user the token was issued for

        Raises:
            Unauthorized: If the token is absent, fails verification, or its
                subject is not an active user
        """
        if not token:
            raise Unauthorized("Unauthorized")

        payload = self.verify_token(token)
        if not payload:
            raise Unauthorized("Unauthorized")

        user_id = payload.get("sub")
        if not user_id:
            raise Unauthorized("Unauthorized")

        user = self.get_user_by_id(str(user_id))
        if not user:
            self.logger.info("token_subject_unknown", user_id=user_id)
            raise Unauthorized("Unauthorized")

        return user
