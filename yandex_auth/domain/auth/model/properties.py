"""Authentication properties carried through the provider round trip."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

REDIRECT_URI_KEY = ".redirect"
IS_PERSISTENT_KEY = ".persistent"
ISSUED_UTC_KEY = ".issued"
EXPIRES_UTC_KEY = ".expires"


def _format_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat()


def _parse_utc(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


@dataclass
class AuthenticationProperties:
    """Mutable string dictionary describing one authentication attempt.

    Well-known entries (redirect target, persistence, issue/expiry times) are
    exposed as properties. Everything else, including the correlation token,
    lives in ``items`` so it survives encoding by the state codec unchanged.
    """

    items: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_redirect(cls, redirect_uri: str) -> "AuthenticationProperties":
        properties = cls()
        properties.redirect_uri = redirect_uri
        return properties

    def _set(self, key: str, value: str | None) -> None:
        if value is None:
            self.items.pop(key, None)
        else:
            self.items[key] = value

    @property
    def redirect_uri(self) -> str | None:
        return self.items.get(REDIRECT_URI_KEY)

    @redirect_uri.setter
    def redirect_uri(self, value: str | None) -> None:
        self._set(REDIRECT_URI_KEY, value)

    @property
    def is_persistent(self) -> bool:
        return self.items.get(IS_PERSISTENT_KEY) == "true"

    @is_persistent.setter
    def is_persistent(self, value: bool) -> None:
        self._set(IS_PERSISTENT_KEY, "true" if value else None)

    @property
    def issued_utc(self) -> datetime | None:
        return _parse_utc(self.items.get(ISSUED_UTC_KEY))

    @issued_utc.setter
    def issued_utc(self, value: datetime | None) -> None:
        self._set(ISSUED_UTC_KEY, _format_utc(value))

    @property
    def expires_utc(self) -> datetime | None:
        return _parse_utc(self.items.get(EXPIRES_UTC_KEY))

    @expires_utc.setter
    def expires_utc(self, value: datetime | None) -> None:
        self._set(EXPIRES_UTC_KEY, _format_utc(value))
