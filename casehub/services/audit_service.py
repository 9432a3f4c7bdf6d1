"""Audit logging service: records successful mutating requests."""

from typing import Any, Optional
from datetime import datetime
import uuid

import structlog

from casehub.database import AsyncSessionLocal
from casehub.models.audit_log import AuditLog

logger = structlog.get_logger()

_REDACTED = "***"
_SENSITIVE_MARKERS = ("password", "token", "secret")


def _to_uuid(value: Optional[str], field_name: str) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        logger.warning("audit_invalid_uuid", field=field_name, value=str(value))
        return None


def redact(payload: Any) -> Any:
    """Mask credential-like keys anywhere in a request body."""
    if isinstance(payload, dict):
        return {
            key: _REDACTED
            if any(marker in str(key).lower() for marker in _SENSITIVE_MARKERS)
            else redact(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [redact(item) for item in payload]
    return payload


async def record_audit(
    *,
    actor_id: Optional[str],
    actor_email: Optional[str],
    action: str,
    resource: str,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """
    Write one audit row in its own session.

    Runs after the response has been sent. A failure here is logged and
    swallowed; it never affects the request that triggered it.
    """
    try:
        async with AsyncSessionLocal() as session:
            session.add(AuditLog(
                actor_id=_to_uuid(actor_id, "actor_id"),
                actor_email=actor_email,
                action=action,
                resource=resource,
                resource_id=resource_id,
                details=redact(details) if details else None,
                ip_address=ip_address,
                user_agent=user_agent,
                request_id=request_id,
                created_at=datetime.utcnow(),
            ))
            await session.commit()
    except Exception as e:
        logger.error(
            "audit_write_failed",
            action=action,
            resource=resource,
            resource_id=resource_id,
            error=str(e),
        )
        return

    logger.info(
        "audit_log_created",
        action=action,
        resource=resource,
        resource_id=resource_id,
        actor_id=actor_id,
    )
