"""Unit tests for challenge lookup, properties and claims identities."""

from datetime import UTC, datetime

import pytest

from yandex_auth.domain.auth.model.claims import Claim, ClaimsIdentity, ClaimTypes
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.model.ticket import (
    AuthenticationChallenge,
    AuthenticationMode,
    AuthenticationTicket,
    lookup_challenge,
)


class TestLookupChallenge:
    def test_passive_ignores_missing_challenge(self):
        assert lookup_challenge(None, "Yandex", AuthenticationMode.PASSIVE) is None

    def test_passive_ignores_unnamed_challenge(self):
        challenge = AuthenticationChallenge()

        assert lookup_challenge(challenge, "Yandex", AuthenticationMode.PASSIVE) is None

    def test_passive_answers_when_named(self):
        challenge = AuthenticationChallenge(("Google", "Yandex"))

        assert lookup_challenge(challenge, "Yandex", AuthenticationMode.PASSIVE) is challenge

    def test_active_answers_missing_challenge(self):
        result = lookup_challenge(None, "Yandex", AuthenticationMode.ACTIVE)

        assert result is not None
        assert result.properties.items == {}

    def test_active_answers_unnamed_challenge(self):
        challenge = AuthenticationChallenge(properties=AuthenticationProperties.for_redirect("/x"))

        assert lookup_challenge(challenge, "Yandex", AuthenticationMode.ACTIVE) is challenge

    @pytest.mark.parametrize("mode", list(AuthenticationMode))
    def test_other_scheme_named(self, mode: AuthenticationMode):
        challenge = AuthenticationChallenge(("Google",))

        assert lookup_challenge(challenge, "Yandex", mode) is None


class TestAuthenticationProperties:
    def test_well_known_entries_live_in_items(self):
        properties = AuthenticationProperties()
        properties.redirect_uri = "/home"
        properties.is_persistent = True

        assert properties.items == {".redirect": "/home", ".persistent": "true"}

    def test_clearing_removes_entries(self):
        properties = AuthenticationProperties.for_redirect("/home")
        properties.redirect_uri = None
        properties.is_persistent = False

        assert properties.items == {}

    def test_utc_times_round_trip(self):
        issued = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        properties = AuthenticationProperties()
        properties.issued_utc = issued

        assert properties.issued_utc == issued
        assert properties.expires_utc is None

    def test_unparseable_time_is_none(self):
        properties = AuthenticationProperties(items={".expires": "tomorrow"})

        assert properties.expires_utc is None


class TestClaimsIdentity:
    def _identity(self) -> ClaimsIdentity:
        return ClaimsIdentity(
            "Yandex",
            [Claim(ClaimTypes.NAME_IDENTIFIER, "1"), Claim(ClaimTypes.NAME, "bob")],
        )

    def test_name_and_authentication(self):
        identity = self._identity()

        assert identity.name == "bob"
        assert identity.is_authenticated
        assert not ClaimsIdentity().is_authenticated

    def test_add_and_remove_claims(self):
        identity = self._identity()
        role = Claim(ClaimTypes.ROLE, "admin")

        identity.add_claim(role)
        assert identity.has_claim(ClaimTypes.ROLE, "admin")

        identity.remove_claim(role)
        assert not identity.has_claim(ClaimTypes.ROLE, "admin")
        assert len(identity) == 2

    def test_remove_missing_claim_raises(self):
        with pytest.raises(ValueError):
            self._identity().remove_claim(Claim(ClaimTypes.ROLE, "admin"))

    def test_with_authentication_type_copies_claims(self):
        identity = self._identity()

        copy = identity.with_authentication_type("ExternalCookie")
        copy.add_claim(Claim(ClaimTypes.EMAIL, "bob@example.com"))

        assert copy.authentication_type == "ExternalCookie"
        assert copy.name == "bob"
        assert len(identity) == 2
        assert len(copy) == 3


class TestAuthenticationTicket:
    def test_succeeded_requires_identity(self):
        properties = AuthenticationProperties()

        assert AuthenticationTicket(ClaimsIdentity("Yandex"), properties).succeeded
        assert not AuthenticationTicket(None, properties).succeeded
