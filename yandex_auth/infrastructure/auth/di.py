"""DI provider for Yandex sign-in infrastructure."""

from dishka import Container, Provider, Scope, from_context, make_container, provide

from yandex_auth.config import Config, CookieConfig
from yandex_auth.domain.auth.port.data_protector import DataProtector
from yandex_auth.domain.auth.port.provider import AuthenticationHook, YandexAuthenticationProvider
from yandex_auth.domain.auth.port.sign_in import SignInManager
from yandex_auth.domain.auth.service.state import PropertiesDataFormat
from yandex_auth.infrastructure.auth.cookie import JwtCookieSignIn
from yandex_auth.infrastructure.auth.protector import state_protector
from yandex_auth.options import YandexAuthenticationOptions


class YandexAuthProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)

    @provide(scope=Scope.APP)
    def get_data_protector(self, config: Config) -> DataProtector:
        return state_protector(config.data_protection.secret, config.yandex.authentication_type)

    @provide(scope=Scope.APP)
    def get_state_data_format(self, protector: DataProtector) -> PropertiesDataFormat:
        return PropertiesDataFormat(_protector=protector)

    # Concrete type for routes that read the cookie back
    sign_in_cookie = provide(JwtCookieSignIn, scope=Scope.APP)

    @provide(scope=Scope.APP)
    def get_cookie_config(self, config: Config) -> CookieConfig:
        return config.cookie

    @provide(scope=Scope.APP)
    def get_sign_in(self, cookie: JwtCookieSignIn) -> SignInManager:
        return cookie

    @provide(scope=Scope.APP)
    def get_hook(self) -> AuthenticationHook:
        return YandexAuthenticationProvider()

    @provide(scope=Scope.APP)
    def get_options(
        self,
        config: Config,
        hook: AuthenticationHook,
        state_data_format: PropertiesDataFormat,
        sign_in: SignInManager,
    ) -> YandexAuthenticationOptions:
        return YandexAuthenticationOptions.from_config(
            config.yandex,
            provider=hook,
            state_data_format=state_data_format,
            sign_in=sign_in,
        )


def create_container(config: Config | None = None) -> Container:
    return make_container(
        YandexAuthProvider(),
        context={Config: config or Config()},
    )
