"""Yandex authentication models."""

from .claims import XML_SCHEMA_STRING, Claim, ClaimsIdentity, ClaimTypes
from .profile import TokenResponse, UserProfile
from .properties import AuthenticationProperties
from .ticket import (
    AuthenticationChallenge,
    AuthenticationMode,
    AuthenticationTicket,
    lookup_challenge,
)

__all__ = [
    "XML_SCHEMA_STRING",
    "AuthenticationChallenge",
    "AuthenticationMode",
    "AuthenticationProperties",
    "AuthenticationTicket",
    "Claim",
    "ClaimTypes",
    "ClaimsIdentity",
    "TokenResponse",
    "UserProfile",
    "lookup_challenge",
]
