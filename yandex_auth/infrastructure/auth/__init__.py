"""Yandex authentication adapters."""

from .backchannel import HttpxBackchannel, build_backchannel_client
from .cookie import JwtCookieSignIn
from .protector import HmacDataProtector, state_protector

__all__ = [
    "HmacDataProtector",
    "HttpxBackchannel",
    "JwtCookieSignIn",
    "build_backchannel_client",
    "state_protector",
]
