"""Sign in with Yandex for Starlette and FastAPI applications."""

from yandex_auth.application import (
    YandexAuthenticationMiddleware,
    challenge,
    set_default_sign_in_as_type,
    use_yandex_authentication,
)
from yandex_auth.domain.auth.model import (
    AuthenticationMode,
    AuthenticationProperties,
    ClaimsIdentity,
    ClaimTypes,
)
from yandex_auth.domain.auth.port import (
    AuthenticatedContext,
    ReturnEndpointContext,
    YandexAuthenticationProvider,
)
from yandex_auth.options import YandexAuthenticationOptions

__all__ = [
    "AuthenticatedContext",
    "AuthenticationMode",
    "AuthenticationProperties",
    "ClaimTypes",
    "ClaimsIdentity",
    "ReturnEndpointContext",
    "YandexAuthenticationMiddleware",
    "YandexAuthenticationOptions",
    "YandexAuthenticationProvider",
    "challenge",
    "set_default_sign_in_as_type",
    "use_yandex_authentication",
]
