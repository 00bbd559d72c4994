"""Authentication dependencies for FastAPI."""

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from microbial.auth.local import LocalAuthService
from microbial.logging_config import get_logger
from microbial.storage.models import User

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

# Auth service instance
auth_service = LocalAuthService()


def get_auth_service() -> LocalAuthService:
    return auth_service


def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    x_auth_token: str | None = Header(default=None, alias="X-Auth-Token"),
    service: LocalAuthService = Depends(get_auth_service),
) -> User:
    """Require authentication - raises 401 if not authenticated.

    Accepts ``Authorization: Bearer <token>`` or the ``X-Auth-Token`` header.

    Returns:
        Authenticated user

    Raises:
        Unauthorized: 401 if the credential is missing or invalid
    """
    token = credentials.credentials if credentials else x_auth_token

    user = service.authenticate(token)

    # Store user in request state for later use
    request.state.user = user
    return user
