from __future__ import annotations

import logging
from typing import Sequence
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.core.errors import (
    AuthorizationError,
    DuplicateDomainError,
    NotFoundError,
    OrganizationLookupError,
    OrganizationValidationError,
    StoreError,
    UserExistsError,
    ValidationError,
)
from complaintdesk.domain.models import Organization, User
from complaintdesk.domain.records import (
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLES,
    Actor,
    OrganizationRecord,
    utc_now,
)
from complaintdesk.persistence.repos import organizations as organizations_repo
from complaintdesk.persistence.repos import users as users_repo
from complaintdesk.services.access import require_admin
from complaintdesk.services.audit import record_event
from complaintdesk.services.changes import (
    COLLECTION_ORGANIZATIONS,
    COLLECTION_USERS,
    change_feed,
)


logger = logging.getLogger(__name__)


def email_domain(email: str) -> str | None:
    # Everything after the first "@", lowercased; None when absent or empty.
    if "@" not in email:
        return None
    domain = email.split("@", 1)[1].strip().lower()
    return domain or None


def resolve_org_for_email(email: str, organizations: Sequence[OrganizationRecord]) -> str:
    """Map an email address to the organization owning its domain.

    Matching is exact and case-insensitive (no subdomain matching). When two
    organizations share a domain the first one in directory order wins.
    """
    domain = email_domain(email)
    if domain is None:
        raise OrganizationLookupError(OrganizationLookupError.NO_DOMAIN, "Invalid email address")
    if not organizations:
        raise OrganizationLookupError(OrganizationLookupError.NO_ORGANIZATIONS, "No organizations found")
    for org in organizations:
        if org.email_domain.lower() == domain:
            return org.id
    raise OrganizationLookupError(
        OrganizationLookupError.NO_MATCH,
        "No organization found for this email domain",
    )


def validate_organization(name: str | None, domain: str | None) -> tuple[str, str]:
    clean_name = (name or "").strip()
    clean_domain = (domain or "").strip().lower()
    if not clean_name or not clean_domain:
        raise OrganizationValidationError("Organization name and email domain are required")
    return clean_name, clean_domain


async def _organization_directory(session: AsyncSession) -> list[OrganizationRecord]:
    try:
        organizations = await organizations_repo.list_organizations(session)
    except SQLAlchemyError as exc:
        raise StoreError("Failed to read organizations; please retry") from exc
    return [OrganizationRecord.from_model(org) for org in organizations]


async def create_organization(
    session: AsyncSession,
    *,
    actor: Actor,
    name: str | None,
    email_domain: str | None,
) -> Organization:
    require_admin(actor)
    clean_name, clean_domain = validate_organization(name, email_domain)
    if await organizations_repo.get_by_domain(session, clean_domain) is not None:
        raise DuplicateDomainError(f"Email domain {clean_domain} is already registered")

    org = Organization(id=uuid4().hex, name=clean_name, email_domain=clean_domain, created_at=utc_now())
    session.add(org)
    try:
        await session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent create for the same domain.
        await session.rollback()
        raise DuplicateDomainError(f"Email domain {clean_domain} is already registered") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError("Failed to create organization; please retry") from exc

    logger.info("organization_created org_id=%s domain=%s actor_id=%s", org.id, clean_domain, actor.user_id)
    change_feed.publish(COLLECTION_ORGANIZATIONS, org.id)
    await record_event(action=f"Created organization {clean_name}", admin_id=actor.user_id)
    return org


async def register_user(
    session: AsyncSession,
    *,
    user_id: str,
    email: str,
    role: str,
    name: str | None = None,
) -> User:
    # Identity is minted by the identity provider; this only writes the application profile.
    normalized_role = role.strip().lower()
    if normalized_role not in ROLES:
        raise ValidationError(f"Unsupported role: {role}")
    if normalized_role == ROLE_ADMIN:
        raise AuthorizationError("Administrator profiles are provisioned by an operator, not self-registered")
    if await users_repo.get_user(session, user_id) is not None:
        raise UserExistsError(f"User {user_id} is already registered")

    org_id = resolve_org_for_email(email, await _organization_directory(session))

    user = User(
        id=user_id,
        email=email.strip(),
        name=(name or "").strip() or email.split("@")[0],
        role=normalized_role,
        org_id=org_id,
        created_at=utc_now(),
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise UserExistsError(f"User {user_id} is already registered") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError("Failed to save user profile; please retry") from exc

    logger.info("user_registered user_id=%s role=%s org_id=%s", user.id, normalized_role, org_id)
    change_feed.publish(COLLECTION_USERS, user.id)
    return user


async def assign_manager(
    session: AsyncSession,
    *,
    actor: Actor,
    org_id: str,
    user_id: str,
) -> User:
    # Overwrites role and organization unconditionally; only the audit entry keeps history.
    require_admin(actor)
    org = await organizations_repo.get_organization(session, org_id)
    if org is None:
        raise NotFoundError(f"Organization {org_id} not found")
    user = await users_repo.get_user(session, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    user.role = ROLE_MANAGER
    user.org_id = org.id
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StoreError("Failed to assign manager; please retry") from exc

    logger.info("manager_assigned user_id=%s org_id=%s actor_id=%s", user.id, org.id, actor.user_id)
    change_feed.publish(COLLECTION_USERS, user.id)
    await record_event(
        action=f"Assigned {user.email or user.id} as manager of {org.name or org.id}",
        admin_id=actor.user_id,
    )
    return user
