from __future__ import annotations


class ComplaintDeskError(Exception):
    """Base error for complaintdesk."""


class ValidationError(ComplaintDeskError):
    """Input rejected before any state is written."""


class ComplaintValidationError(ValidationError):
    """Missing or malformed complaint fields."""


class OrganizationValidationError(ValidationError):
    """Missing organization name or email domain."""


class RatingValidationError(ValidationError):
    """Satisfaction rating outside 1-5 or given too early."""


class NotFoundError(ComplaintDeskError):
    """Target complaint, user or organization does not exist."""


class OrganizationLookupError(ComplaintDeskError):
    """No organization could be resolved for an email address."""

    NO_DOMAIN = "NoDomain"
    NO_ORGANIZATIONS = "NoOrganizations"
    NO_MATCH = "NoMatch"

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class AuthorizationError(ComplaintDeskError):
    """Actor lacks the role or organization required for the operation."""


class InvalidTransitionError(ComplaintDeskError):
    """Requested workflow stage is not the immediate successor."""


class ConflictError(ComplaintDeskError):
    """Write would collide with an existing record."""


class DuplicateDomainError(ConflictError):
    """Another organization already owns the email domain."""


class UserExistsError(ConflictError):
    """A profile already exists for the identity-provider subject."""


class StoreError(ComplaintDeskError):
    """Backing store read or write failed; safe to retry."""
