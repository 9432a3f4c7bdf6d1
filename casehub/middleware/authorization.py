from fastapi import Depends

from casehub.errors import AuthorizationError
from casehub.middleware.auth import get_current_user

MANAGERS = ("admin", "coordinator")


def require_roles(*allowed_roles: str):
    """
    FastAPI dependency factory for role-based access control.

    Usage:
        @router.post("/invoices")
        async def create_invoice(
            current_user: dict = Depends(get_current_user),
            _auth: None = Depends(require_roles("admin", "coordinator")),
        ):
    """
    async def check_role(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            raise AuthorizationError(
                f"Role '{current_user['role']}' cannot perform this action. "
                f"Required: {', '.join(allowed_roles)}"
            )
        return None

    return check_role


def is_owner_or_manager(current_user: dict, owner_id) -> bool:
    """True for the record's owner and for admin/coordinator accounts."""
    if current_user["role"] in MANAGERS:
        return True
    return owner_id is not None and str(owner_id) == str(current_user["user_id"])
