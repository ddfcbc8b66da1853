"""Identity mapper: UserProfile -> ClaimsIdentity."""

from yandex_auth.domain.auth.model.claims import (
    XML_SCHEMA_STRING,
    Claim,
    ClaimsIdentity,
    ClaimTypes,
)
from yandex_auth.domain.auth.model.profile import UserProfile


def build_identity(profile: UserProfile, authentication_type: str) -> ClaimsIdentity:
    """Build the claim set for a Yandex user.

    Pure function. Each claim is added only when its source field is non-empty.
    """
    identity = ClaimsIdentity(authentication_type)

    for claim_type, value in (
        (ClaimTypes.NAME_IDENTIFIER, profile.id),
        (ClaimTypes.NAME, profile.default_name),
        (ClaimTypes.YANDEX_NAME, profile.full_name),
        (ClaimTypes.EMAIL, profile.email),
    ):
        if value:
            identity.add_claim(
                Claim(claim_type, value, XML_SCHEMA_STRING, issuer=authentication_type)
            )

    return identity
