import uuid

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
import structlog

from casehub.errors import AuthenticationError
from casehub.services.auth_service import verify_access_token

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """FastAPI dependency: extract and verify JWT, return user claims dict."""
    if credentials is None:
        raise AuthenticationError("Authentication required")
    try:
        payload = verify_access_token(credentials.credentials)
        return {
            "user_id": payload["sub"],
            "role": payload["role"],
            "email": payload["email"],
        }
    except (JWTError, KeyError) as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise AuthenticationError("Invalid or expired token")


def current_user_id(current_user: dict) -> uuid.UUID:
    try:
        return uuid.UUID(str(current_user["user_id"]))
    except (KeyError, ValueError):
        raise AuthenticationError("Invalid or expired token")
