from __future__ import annotations

import pytest

from complaintdesk.core.errors import OrganizationLookupError, OrganizationValidationError
from complaintdesk.domain.records import OrganizationRecord
from complaintdesk.services.tenancy import email_domain, resolve_org_for_email, validate_organization


ACME = OrganizationRecord(id="org-acme", name="Acme", email_domain="acme.com")
GLOBEX = OrganizationRecord(id="org-globex", name="Globex", email_domain="globex.org")


def test_resolves_matching_domain() -> None:
    assert resolve_org_for_email("user@acme.com", [ACME]) == "org-acme"


def test_resolution_is_case_insensitive() -> None:
    assert resolve_org_for_email("Someone@ACME.Com", [GLOBEX, ACME]) == "org-acme"


def test_resolution_failures_carry_reason() -> None:
    with pytest.raises(OrganizationLookupError) as no_domain:
        resolve_org_for_email("bad", [ACME])
    assert no_domain.value.reason == OrganizationLookupError.NO_DOMAIN

    with pytest.raises(OrganizationLookupError) as empty:
        resolve_org_for_email("user@acme.com", [])
    assert empty.value.reason == OrganizationLookupError.NO_ORGANIZATIONS

    with pytest.raises(OrganizationLookupError) as no_match:
        resolve_org_for_email("user@mail.acme.com", [ACME])
    assert no_match.value.reason == OrganizationLookupError.NO_MATCH


def test_first_organization_wins_on_shared_domain() -> None:
    duplicate = OrganizationRecord(id="org-acme-2", name="Acme Two", email_domain="acme.com")
    assert resolve_org_for_email("user@acme.com", [ACME, duplicate]) == "org-acme"


def test_email_domain_edge_cases() -> None:
    assert email_domain("a@b.com") == "b.com"
    assert email_domain("a@") is None
    assert email_domain("plain") is None


def test_validate_organization_normalizes_domain() -> None:
    assert validate_organization(" Acme ", " ACME.com ") == ("Acme", "acme.com")
    with pytest.raises(OrganizationValidationError):
        validate_organization("Acme", "  ")
    with pytest.raises(OrganizationValidationError):
        validate_organization(None, "acme.com")
