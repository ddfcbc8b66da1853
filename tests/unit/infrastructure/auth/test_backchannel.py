"""Unit tests for the httpx backchannel."""

import asyncio
import ssl
import time
from datetime import timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from yandex_auth.domain.shared.error import ConfigurationError, ExternalServiceError
from yandex_auth.infrastructure.auth import backchannel as backchannel_module
from yandex_auth.infrastructure.auth.backchannel import (
    TOKEN_ENDPOINT,
    USER_INFO_ENDPOINT,
    HttpxBackchannel,
    build_backchannel_client,
)


def _backchannel(handler) -> HttpxBackchannel:
    return HttpxBackchannel(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_posts_form_encoded_grant(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})

        token = await _backchannel(handler).exchange_code("app", "s3cret", "the-code")

        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_ENDPOINT
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert parse_qs(request.content.decode()) == {
            "client_id": ["app"],
            "client_secret": ["s3cret"],
            "grant_type": ["authorization_code"],
            "code": ["the-code"],
        }
        assert token.access_token == "tok"
        assert token.expires_in == timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_non_success_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(ExternalServiceError) as exc_info:
            await _backchannel(handler).exchange_code("app", "s3cret", "bad")
        assert exc_info.value.code == "idp_unavailable"

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        with pytest.raises(ExternalServiceError) as exc_info:
            await _backchannel(handler).exchange_code("app", "s3cret", "code")
        assert exc_info.value.code == "oauth_error"


class TestGetUserProfile:
    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"id": "1", "login": "bob"})

        profile = await _backchannel(handler).get_user_profile("tok")

        request = captured[0]
        assert request.method == "GET"
        assert str(request.url) == USER_INFO_ENDPOINT
        assert request.headers["authorization"] == "Bearer tok"
        assert request.headers["accept"] == "application/json"
        assert profile.id == "1"
        assert profile.login == "bob"

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(ExternalServiceError):
            await _backchannel(handler).get_user_profile("tok")

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExternalServiceError) as exc_info:
            await _backchannel(handler).get_user_profile("tok")
        assert exc_info.value.code == "idp_timeout"

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ExternalServiceError) as exc_info:
            await _backchannel(handler).get_user_profile("tok")
        assert exc_info.value.code == "idp_unavailable"

    @pytest.mark.asyncio
    async def test_oversized_response_raises(self, monkeypatch):
        monkeypatch.setattr(backchannel_module, "MAX_RESPONSE_CONTENT_BUFFER_SIZE", 16)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "1", "login": "a-rather-long-login"})

        with pytest.raises(ExternalServiceError) as exc_info:
            await _backchannel(handler).get_user_profile("tok")
        assert exc_info.value.code == "response_too_large"

    @pytest.mark.asyncio
    async def test_slow_body_is_bounded_by_call_deadline(self):
        async def trickle():
            yield b"{"
            for _ in range(100):
                await asyncio.sleep(0.05)
                yield b" "
            yield b"}"

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=trickle())

        backchannel = HttpxBackchannel(
            httpx.AsyncClient(transport=httpx.MockTransport(handler)), timeout=0.3
        )

        started = time.monotonic()
        with pytest.raises(ExternalServiceError) as exc_info:
            await backchannel.get_user_profile("tok")
        elapsed = time.monotonic() - started

        assert exc_info.value.code == "idp_timeout"
        assert elapsed < 2.0

    @pytest.mark.asyncio
    async def test_fast_response_within_deadline(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "1", "login": "bob"})

        backchannel = HttpxBackchannel(
            httpx.AsyncClient(transport=httpx.MockTransport(handler)), timeout=5.0
        )

        profile = await backchannel.get_user_profile("tok")

        assert profile.login == "bob"


class TestBuildBackchannelClient:
    def test_applies_timeout(self):
        client = build_backchannel_client(5.0)

        assert client.timeout == httpx.Timeout(5.0)

    def test_transport_and_validator_conflict(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200))

        with pytest.raises(ConfigurationError):
            build_backchannel_client(5.0, transport=transport, verify=ssl.create_default_context())
