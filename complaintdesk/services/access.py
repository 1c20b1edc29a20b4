from __future__ import annotations

from complaintdesk.core.errors import AuthorizationError
from complaintdesk.domain.records import Actor


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin role required")


def require_org_manager(actor: Actor, org_id: str | None) -> None:
    # Managers act only inside the organization they were assigned to.
    if not actor.is_manager:
        raise AuthorizationError("Manager role required")
    if not actor.org_id or actor.org_id != org_id:
        raise AuthorizationError("Complaint belongs to a different organization")


def require_owner_or_admin(actor: Actor, owner_id: str | None) -> None:
    if actor.is_admin:
        return
    if owner_id is None or actor.user_id != owner_id:
        raise AuthorizationError("Only the submitter can modify this complaint")
