"""Claims and claims identities."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

XML_SCHEMA_STRING = "http://www.w3.org/2001/XMLSchema#string"
LOCAL_AUTHORITY = "LOCAL AUTHORITY"


class ClaimTypes:
    """Well-known claim type URIs."""

    NAME_IDENTIFIER = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"
    NAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"
    EMAIL = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress"
    ROLE = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"
    YANDEX_NAME = "urn:yandex.ru:name"


@dataclass(frozen=True)
class Claim:
    """A single statement about the subject, as (type, value, value type, issuer)."""

    type: str
    value: str
    value_type: str = XML_SCHEMA_STRING
    issuer: str = LOCAL_AUTHORITY


class ClaimsIdentity:
    """An ordered, mutable set of claims issued by one authentication type.

    An identity without an authentication type is anonymous.
    """

    def __init__(
        self,
        authentication_type: str | None = None,
        claims: Iterable[Claim] = (),
        name_claim_type: str = ClaimTypes.NAME,
        role_claim_type: str = ClaimTypes.ROLE,
    ) -> None:
        self.authentication_type = authentication_type
        self.name_claim_type = name_claim_type
        self.role_claim_type = role_claim_type
        self._claims: list[Claim] = list(claims)

    @property
    def claims(self) -> tuple[Claim, ...]:
        return tuple(self._claims)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type)

    @property
    def name(self) -> str | None:
        claim = self.find_first(self.name_claim_type)
        return claim.value if claim else None

    def add_claim(self, claim: Claim) -> None:
        self._claims.append(claim)

    def remove_claim(self, claim: Claim) -> None:
        """Remove a claim, raising ValueError if it is not present."""
        self._claims.remove(claim)

    def find_all(self, claim_type: str) -> list[Claim]:
        return [c for c in self._claims if c.type == claim_type]

    def find_first(self, claim_type: str) -> Claim | None:
        return next((c for c in self._claims if c.type == claim_type), None)

    def has_claim(self, claim_type: str, value: str) -> bool:
        return any(c.type == claim_type and c.value == value for c in self._claims)

    def with_authentication_type(self, authentication_type: str) -> "ClaimsIdentity":
        """Copy of this identity re-issued under another authentication type."""
        return ClaimsIdentity(
            authentication_type,
            self._claims,
            name_claim_type=self.name_claim_type,
            role_claim_type=self.role_claim_type,
        )

    def __iter__(self) -> Iterator[Claim]:
        return iter(self._claims)

    def __len__(self) -> int:
        return len(self._claims)

    def __repr__(self) -> str:
        return (
            f"ClaimsIdentity(authentication_type={self.authentication_type!r}, "
            f"claims={len(self._claims)})"
        )
