"""
Audit trail dependency.

Routes declare ``trail: AuditTrail = Depends(audit_action("update", "invoice"))``
and call ``trail.record(resource_id, body)`` once the mutation succeeded. The
write itself happens in a background task after the response, in its own
session, so audit problems never fail the request.
"""

from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, Request
from pydantic import BaseModel

from casehub.middleware.auth import get_current_user
from casehub.services.audit_service import record_audit


class AuditTrail:
    def __init__(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        current_user: dict,
        action: str,
        resource: str,
    ):
        self.request = request
        self.background_tasks = background_tasks
        self.current_user = current_user
        self.action = action
        self.resource = resource

    def record(self, resource_id: Any = None, body: Any = None) -> None:
        if isinstance(body, BaseModel):
            body = body.model_dump(mode="json", exclude_unset=True)
        client = self.request.client
        details = {
            "method": self.request.method,
            "path": self.request.url.path,
            "query": dict(self.request.query_params) or None,
            "body": body,
        }
        self.background_tasks.add_task(
            record_audit,
            actor_id=self.current_user.get("user_id"),
            actor_email=self.current_user.get("email"),
            action=self.action,
            resource=self.resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details,
            ip_address=client.host if client else None,
            user_agent=self.request.headers.get("user-agent"),
            request_id=getattr(self.request.state, "request_id", None),
        )


def audit_action(action: str, resource: Optional[str] = None):
    """Dependency factory binding an action/resource pair to the current request."""
    async def _trail(
        request: Request,
        background_tasks: BackgroundTasks,
        current_user: dict = Depends(get_current_user),
    ) -> AuditTrail:
        return AuditTrail(request, background_tasks, current_user, action, resource or "")

    return _trail
