"""Value objects parsed from Yandex backchannel responses."""

import json
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any


def _text(document: dict[str, Any], key: str) -> str:
    """Read a field as text, defaulting to empty string when absent or null."""
    value = document.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _as_document(document: Any) -> dict[str, Any]:
    return document if isinstance(document, dict) else {}


def parse_expires_in(value: Any) -> timedelta | None:
    """Parse an ``expires_in`` value in whole seconds.

    Absent or non-integer values mean the expiry is unknown.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = int(str(value).strip())
    except ValueError:
        return None
    return timedelta(seconds=seconds)


@dataclass(frozen=True)
class TokenResponse:
    """Access token returned by the token endpoint."""

    access_token: str
    expires_in: timedelta | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_document(cls, document: Any) -> "TokenResponse":
        data = _as_document(document)
        return cls(
            access_token=_text(data, "access_token"),
            expires_in=parse_expires_in(data.get("expires_in")),
            raw=data,
        )


@dataclass(frozen=True)
class UserProfile:
    """User information document from login.yandex.ru/info.

    Every field is a checked lookup: missing fields are empty strings, so a
    partial document never fails to parse.
    """

    id: str = ""
    first_name: str = ""
    last_name: str = ""
    login: str = ""
    email: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_document(cls, document: Any) -> "UserProfile":
        data = _as_document(document)

        email = ""
        emails = data.get("emails")
        if isinstance(emails, list) and emails and emails[0] is not None:
            email = str(emails[0])

        return cls(
            id=_text(data, "id"),
            first_name=_text(data, "first_name"),
            last_name=_text(data, "last_name"),
            login=_text(data, "login"),
            email=email,
            raw=data,
        )

    @property
    def nickname(self) -> str:
        return self.login

    @property
    def full_name(self) -> str:
        # Joined even when one side is empty: "" + " " + "Ivanov" == " Ivanov"
        return self.first_name + " " + self.last_name

    @property
    def default_name(self) -> str:
        return self.login or self.full_name
