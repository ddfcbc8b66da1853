"""Options for the Yandex authentication middleware."""

import ssl
from datetime import timedelta

import httpx
from pydantic import ConfigDict, InstanceOf

from yandex_auth.config import YandexConfig
from yandex_auth.domain.auth.port.provider import AuthenticationHook
from yandex_auth.domain.auth.port.sign_in import SignInManager
from yandex_auth.domain.auth.service.state import PropertiesDataFormat
from yandex_auth.domain.shared.error import ConfigurationError


class YandexAuthenticationOptions(YandexConfig):
    """Immutable middleware configuration, built once at startup.

    Extends the file/env settings in YandexConfig with the collaborators a
    host can plug in. Collaborators left as None are filled with defaults
    when the middleware is constructed.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    provider: AuthenticationHook | None = None
    state_data_format: InstanceOf[PropertiesDataFormat] | None = None
    sign_in: SignInManager | None = None
    backchannel_transport: httpx.AsyncBaseTransport | None = None
    backchannel_certificate_validator: ssl.SSLContext | None = None

    @classmethod
    def from_config(cls, config: YandexConfig, **collaborators) -> "YandexAuthenticationOptions":
        return cls(**config.model_dump(), **collaborators)

    @property
    def backchannel_timeout_delta(self) -> timedelta:
        return timedelta(seconds=self.backchannel_timeout)

    def validate_for_startup(self) -> None:
        """Fail fast on settings that would only break at request time.

        Raises:
            ConfigurationError: If the app id or secret is missing, or both a
                transport and a certificate validator were supplied
        """
        if not self.app_id:
            raise ConfigurationError("app_id must be provided", code="missing_app_id")
        if not self.app_secret:
            raise ConfigurationError("app_secret must be provided", code="missing_app_secret")
        if (
            self.backchannel_transport is not None
            and self.backchannel_certificate_validator is not None
        ):
            raise ConfigurationError(
                "A certificate validator cannot be set together with a custom "
                "backchannel transport",
                code="conflicting_backchannel",
            )
