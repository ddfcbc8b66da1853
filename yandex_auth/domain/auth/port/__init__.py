"""Yandex authentication ports."""

from .backchannel import Backchannel
from .data_protector import DataProtector
from .provider import (
    AuthenticatedContext,
    AuthenticationHook,
    ReturnEndpointContext,
    YandexAuthenticationProvider,
)
from .sign_in import SignInManager

__all__ = [
    "AuthenticatedContext",
    "AuthenticationHook",
    "Backchannel",
    "DataProtector",
    "ReturnEndpointContext",
    "SignInManager",
    "YandexAuthenticationProvider",
]
