"""HTTP side of the Yandex sign-in flow."""

from .handler import FlowState, YandexAuthenticationHandler
from .middleware import CHALLENGE_STATE_KEY, YandexAuthenticationMiddleware, challenge
from .registration import (
    get_default_sign_in_as_type,
    set_default_sign_in_as_type,
    use_yandex_authentication,
)

__all__ = [
    "CHALLENGE_STATE_KEY",
    "FlowState",
    "YandexAuthenticationHandler",
    "YandexAuthenticationMiddleware",
    "challenge",
    "get_default_sign_in_as_type",
    "set_default_sign_in_as_type",
    "use_yandex_authentication",
]
