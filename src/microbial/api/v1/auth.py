"""Authentication API v1 endpoints."""

from fastapi import APIRouter, Depends

from microbial.auth.middleware import require_auth
from microbial.auth.models import UserEnvelope, UserResponse
from microbial.storage.models import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("", response_model=UserEnvelope)
async def validate_token(user: User = Depends(require_auth)):
    """Validate the presented token and return the user it belongs to."""
    return UserEnvelope(user=UserResponse.model_validate(user))
