"""Unit tests for the flow controller helpers and callback cancellation."""

import asyncio

import httpx
import pytest
from starlette.requests import ClientDisconnect

from yandex_auth.application.handler import add_query_string, request_path
from yandex_auth.application.middleware import YandexAuthenticationMiddleware
from yandex_auth.domain.auth.model.claims import Claim, ClaimsIdentity, ClaimTypes
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.service.state import PropertiesDataFormat
from yandex_auth.infrastructure.auth.protector import HmacDataProtector
from yandex_auth.options import YandexAuthenticationOptions


class TestAddQueryString:
    @pytest.mark.parametrize(
        ("uri", "expected"),
        [
            ("https://x.test/p", "https://x.test/p?error=access_denied"),
            ("https://x.test/p?a=1", "https://x.test/p?a=1&error=access_denied"),
            ("https://x.test/p#top", "https://x.test/p?error=access_denied#top"),
            ("https://x.test/p?a=1#top", "https://x.test/p?a=1&error=access_denied#top"),
        ],
    )
    def test_appends_before_fragment(self, uri: str, expected: str):
        assert add_query_string(uri, "error", "access_denied") == expected

    def test_escapes_name_and_value(self):
        assert add_query_string("/p", "a b", "c&d") == "/p?a%20b=c%26d"


class TestRequestPath:
    @pytest.mark.parametrize(
        ("path", "root_path", "expected"),
        [
            ("/signin-yandex", "", "/signin-yandex"),
            ("/app/signin-yandex", "/app", "/signin-yandex"),
            ("/app", "/app", "/"),
            ("/apple/signin-yandex", "/app", "/apple/signin-yandex"),
        ],
    )
    def test_strips_root_path(self, path: str, root_path: str, expected: str):
        assert request_path({"path": path, "root_path": root_path}) == expected


class TestUntilDisconnect:
    @pytest.mark.asyncio
    async def test_returns_result_when_work_finishes(self):
        async def work() -> str:
            return "done"

        async def receive():
            await asyncio.Event().wait()

        result = await YandexAuthenticationMiddleware._until_disconnect(work(), receive)

        assert result == "done"

    @pytest.mark.asyncio
    async def test_cancels_work_when_client_disconnects(self):
        started = asyncio.Event()
        cancelled = False

        async def work() -> None:
            nonlocal cancelled
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled = True
                raise

        async def receive():
            await started.wait()
            return {"type": "http.disconnect"}

        with pytest.raises(ClientDisconnect):
            await YandexAuthenticationMiddleware._until_disconnect(work(), receive)
        assert cancelled

    @pytest.mark.asyncio
    async def test_disconnect_during_exchange_sends_nothing(self):
        exchange_started = asyncio.Event()

        async def yandex(request: httpx.Request) -> httpx.Response:
            exchange_started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json={})

        protector = HmacDataProtector("state-secret", "tests")
        state_format = PropertiesDataFormat(_protector=protector)
        properties = AuthenticationProperties.for_redirect("/home")
        properties.items[".yandex.correlation.Yandex"] = "nonce"
        state = state_format.protect(properties)

        async def downstream(scope, receive, send):
            raise AssertionError("callback must not reach the application")

        middleware = YandexAuthenticationMiddleware(
            downstream,
            YandexAuthenticationOptions(
                app_id="app",
                app_secret="s3cret",
                state_data_format=state_format,
                backchannel_transport=httpx.MockTransport(yandex),
            ),
        )

        scope = {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": "/signin-yandex",
            "root_path": "",
            "query_string": f"code=abc&state={state}".encode(),
            "headers": [
                (b"host", b"testserver"),
                (b"cookie", b".yandex.correlation.Yandex=nonce"),
            ],
        }

        async def receive():
            await exchange_started.wait()
            return {"type": "http.disconnect"}

        sent: list[dict] = []

        async def send(message):
            sent.append(message)

        await middleware(scope, receive, send)

        assert sent == []
        await middleware.aclose()


async def _downstream(scope, receive, send):
    raise AssertionError("not called")


class TestDefaultCollaborators:
    def test_secrets_come_from_settings(self, monkeypatch):
        monkeypatch.setenv("YAUTH_DATA_PROTECTION__SECRET", "shared-state-secret")
        monkeypatch.setenv("YAUTH_COOKIE__SECRET", "shared-cookie-secret-of-some-length")
        options = YandexAuthenticationOptions(app_id="app", app_secret="s3cret")

        # Two workers built from the same settings
        first = YandexAuthenticationMiddleware(_downstream, options)
        second = YandexAuthenticationMiddleware(_downstream, options)

        protected = first.options.state_data_format.protect(
            AuthenticationProperties.for_redirect("/home")
        )
        assert second.options.state_data_format.unprotect(protected).redirect_uri == "/home"

        identity = ClaimsIdentity("ExternalCookie", [Claim(ClaimTypes.NAME, "bob")])
        token = first.options.sign_in.create_token(identity)
        assert second.options.sign_in.read_token(token).name == "bob"

    def test_explicit_data_protector_wins(self):
        protector = HmacDataProtector("explicit-secret", "tests")
        options = YandexAuthenticationOptions(app_id="app", app_secret="s3cret")

        middleware = YandexAuthenticationMiddleware(
            _downstream, options, data_protector=protector
        )

        protected = middleware.options.state_data_format.protect(
            AuthenticationProperties.for_redirect("/home")
        )
        decoded = PropertiesDataFormat(_protector=protector).unprotect(protected)
        assert decoded.redirect_uri == "/home"

    def test_backchannel_deadline_follows_options(self):
        options = YandexAuthenticationOptions(
            app_id="app", app_secret="s3cret", backchannel_timeout=7.5
        )

        middleware = YandexAuthenticationMiddleware(_downstream, options)

        assert middleware._backchannel._timeout == 7.5
