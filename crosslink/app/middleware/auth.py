"""API key validation for inbound cross-system requests."""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

API_KEY_HEADER = "X-API-Key"

CREDENTIAL_REQUIRED = "credential required"
INVALID_CREDENTIAL = "invalid credential"

_LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "[::1]")
_LOOPBACK_FORWARDED = ("127.0.0.1", "::1")


class CredentialOutcome(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    MISCONFIGURED = "misconfigured"


@dataclass(frozen=True)
class CredentialDecision:
    """Result of validating a presented API key."""
    outcome: CredentialOutcome
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is CredentialOutcome.ALLOW


ALLOW = CredentialDecision(CredentialOutcome.ALLOW)
MISCONFIGURED = CredentialDecision(CredentialOutcome.MISCONFIGURED)


def get_api_key(headers: Mapping[str, str]) -> Optional[str]:
    """Extract the API key from request headers.

    Starlette headers are case-insensitive; plain dicts are searched by hand.
    An empty header counts as absent.
    """
    value = headers.get(API_KEY_HEADER)
    if value is None and not hasattr(headers, "getlist"):
        for name, candidate in headers.items():
            if name.lower() == API_KEY_HEADER.lower():
                value = candidate
                break
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_loopback_request(headers: Mapping[str, str]) -> bool:
    """Whether the request looks like it came from the local machine.

    Derived from the Host and X-Forwarded-For headers, so it is only fit for
    the development convenience bypass.
    """
    host = (headers.get("host") or "").lower()
    if any(marker in host for marker in _LOOPBACK_HOSTS):
        return True
    forwarded = headers.get("x-forwarded-for") or ""
    hops = [hop.strip() for hop in forwarded.split(",")]
    return any(hop in _LOOPBACK_FORWARDED for hop in hops)


def is_development_bypass(
    presented: Optional[str],
    is_loopback: bool,
    is_development: bool,
) -> bool:
    """Development-only pass for local callers that present no key.

    Evaluated once per request and shared by the validator and the limiter.
    A presented key is always validated.
    """
    return is_development and is_loopback and not presented


def validate_credential(
    presented: Optional[str],
    is_loopback: bool,
    is_development: bool,
    expected: Optional[str],
) -> CredentialDecision:
    """Decide whether a presented API key may pass.

    Args:
        presented: Value of the X-API-Key header, None if absent
        is_loopback: Request came from the local machine
        is_development: Running with APP_ENV=development
        expected: Configured API key, None or empty if unset

    Returns:
        ALLOW, DENY with a reason, or MISCONFIGURED
    """
    if is_development_bypass(presented, is_loopback, is_development):
        return ALLOW

    if not presented:
        return CredentialDecision(CredentialOutcome.DENY, CREDENTIAL_REQUIRED)

    if not expected:
        return ALLOW if is_development else MISCONFIGURED

    if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        return CredentialDecision(CredentialOutcome.DENY, INVALID_CREDENTIAL)

    return ALLOW
