"""Registration of the Yandex middleware on a Starlette or FastAPI application."""

import logging

import httpx
from starlette.applications import Starlette

from yandex_auth.application.middleware import (
    DEFAULT_SIGN_IN_AS_TYPE,
    YandexAuthenticationMiddleware,
)
from yandex_auth.domain.auth.port.data_protector import DataProtector
from yandex_auth.domain.shared.error import ConfigurationError
from yandex_auth.options import YandexAuthenticationOptions

logger = logging.getLogger(__name__)


def set_default_sign_in_as_type(app: Starlette, authentication_type: str) -> None:
    """Name the sign-in type used by external logins that do not pick their own."""
    app.state.default_sign_in_as_type = authentication_type


def get_default_sign_in_as_type(app: Starlette) -> str:
    return getattr(app.state, "default_sign_in_as_type", None) or DEFAULT_SIGN_IN_AS_TYPE


def use_yandex_authentication(
    app: Starlette,
    app_id: str | None = None,
    app_secret: str | None = None,
    options: YandexAuthenticationOptions | None = None,
    *,
    data_protector: DataProtector | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Starlette:
    """Add Yandex sign-in to an application.

    Either pass the application id and secret, or a full options object. An
    id or secret given alongside options overrides the one in the options.

    Raises:
        ConfigurationError: If the app is None or the id or secret is missing
    """
    if app is None:
        raise ConfigurationError("app must be provided", code="missing_app")

    if options is None:
        options = YandexAuthenticationOptions(app_id=app_id or "", app_secret=app_secret or "")
    else:
        overrides = {"app_id": app_id, "app_secret": app_secret}
        options = options.model_copy(update={k: v for k, v in overrides.items() if v})

    # Checked here so a misconfigured app fails at startup, not at first request
    options.validate_for_startup()

    app.add_middleware(
        YandexAuthenticationMiddleware,
        options=options,
        data_protector=data_protector,
        http_client=http_client,
        default_sign_in_as_type=get_default_sign_in_as_type(app),
    )
    logger.debug("Registered Yandex authentication as %s", options.authentication_type)
    return app
