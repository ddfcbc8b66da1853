"""Authentication ticket and challenge."""

from dataclasses import dataclass, field
from enum import StrEnum

from yandex_auth.domain.auth.model.claims import ClaimsIdentity
from yandex_auth.domain.auth.model.properties import AuthenticationProperties


class AuthenticationMode(StrEnum):
    """How a middleware reacts to 401 responses.

    - ACTIVE: challenges every 401 unless another scheme was explicitly named
    - PASSIVE: only challenges when downstream code names this scheme
    """

    ACTIVE = "active"
    PASSIVE = "passive"


@dataclass
class AuthenticationTicket:
    """Outcome of a callback: identity (None on failure) plus the decoded properties."""

    identity: ClaimsIdentity | None
    properties: AuthenticationProperties | None

    @property
    def succeeded(self) -> bool:
        return self.identity is not None


@dataclass
class AuthenticationChallenge:
    """A login challenge raised by downstream code for the current response."""

    authentication_types: tuple[str, ...] = ()
    properties: AuthenticationProperties = field(default_factory=AuthenticationProperties)


def lookup_challenge(
    challenge: AuthenticationChallenge | None,
    authentication_type: str,
    mode: AuthenticationMode,
) -> AuthenticationChallenge | None:
    """Return the challenge this middleware should answer, if any."""
    if challenge is None or not challenge.authentication_types:
        if mode is AuthenticationMode.ACTIVE:
            return challenge or AuthenticationChallenge()
        return None

    if authentication_type in challenge.authentication_types:
        return challenge
    return None
