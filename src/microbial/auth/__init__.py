"""Authentication: token verification and user resolution."""

from microbial.auth.local import LocalAuthService
from microbial.auth.middleware import require_auth
from microbial.auth.models import UserResponse

__all__ = [
    "LocalAuthService",
    "UserResponse",
    "require_auth",
]
