"""Yandex backchannel adapter over httpx."""

import asyncio
import json
import logging
from typing import Any

import httpx

from yandex_auth.domain.auth.model.profile import TokenResponse, UserProfile
from yandex_auth.domain.auth.port.backchannel import Backchannel
from yandex_auth.domain.shared.error import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://oauth.yandex.ru/authorize"
TOKEN_ENDPOINT = "https://oauth.yandex.ru/token"
USER_INFO_ENDPOINT = "https://login.yandex.ru/info"

# Responses larger than this are rejected (10 MB)
MAX_RESPONSE_CONTENT_BUFFER_SIZE = 1024 * 1024 * 10


def build_backchannel_client(
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
    verify: Any = None,
) -> httpx.AsyncClient:
    """Create the HTTP client used for token exchange and profile fetch.

    Args:
        timeout: Per-phase httpx timeout in seconds (connect, read, write, pool)
        transport: Optional custom transport (mocking, proxies, pinning)
        verify: Optional ``ssl.SSLContext`` used to validate Yandex certificates

    Raises:
        ConfigurationError: If both a transport and a certificate validator are given
    """
    if transport is not None and verify is not None:
        raise ConfigurationError(
            "A certificate validator cannot be combined with a custom backchannel transport; "
            "configure TLS on the transport instead"
        )

    kwargs: dict[str, Any] = {"timeout": httpx.Timeout(timeout)}
    if transport is not None:
        kwargs["transport"] = transport
    if verify is not None:
        kwargs["verify"] = verify
    return httpx.AsyncClient(**kwargs)


class HttpxBackchannel(Backchannel):
    """Backchannel implementation for the Yandex OAuth and login APIs."""

    def __init__(self, http_client: httpx.AsyncClient, timeout: float | None = None) -> None:
        """
        Args:
            http_client: Client the calls are sent through
            timeout: Deadline in seconds for each call as a whole, body included.
                None leaves only the client's own per-phase timeouts.
        """
        self._http = http_client
        self._timeout = timeout

    async def exchange_code(self, app_id: str, app_secret: str, code: str) -> TokenResponse:
        """Exchange authorization code for an access token."""
        data = {
            "client_id": app_id,
            "client_secret": app_secret,
            "grant_type": "authorization_code",
            "code": code,
        }
        request = self._http.build_request("POST", TOKEN_ENDPOINT, data=data)
        document = await self._send(request, "Token exchange")
        return TokenResponse.from_document(document)

    async def get_user_profile(self, access_token: str) -> UserProfile:
        """Fetch the user's profile with the access token."""
        request = self._http.build_request(
            "GET",
            USER_INFO_ENDPOINT,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        document = await self._send(request, "Profile fetch")
        return UserProfile.from_document(document)

    async def _send(self, request: httpx.Request, operation: str) -> Any:
        try:
            body = await asyncio.wait_for(self._fetch(request, operation), timeout=self._timeout)
        except (httpx.TimeoutException, TimeoutError) as e:
            raise ExternalServiceError(
                f"{operation} timed out", code="idp_timeout"
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError(
                f"Failed to connect to Yandex: {e}", code="idp_unavailable"
            ) from e

        try:
            return json.loads(body)
        except ValueError as e:
            raise ExternalServiceError(
                f"{operation} returned invalid JSON", code="oauth_error"
            ) from e

    async def _fetch(self, request: httpx.Request, operation: str) -> bytes:
        response = await self._http.send(request, stream=True)
        try:
            if not response.is_success:
                body = await self._read(response)
                logger.error(
                    "Yandex %s failed: status=%d, body=%s",
                    operation.lower(),
                    response.status_code,
                    body[:500].decode(errors="replace"),
                )
                raise ExternalServiceError(
                    f"{operation} failed: {response.status_code}",
                    code="idp_unavailable",
                )
            return await self._read(response)
        finally:
            await response.aclose()

    @staticmethod
    async def _read(response: httpx.Response) -> bytes:
        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > MAX_RESPONSE_CONTENT_BUFFER_SIZE:
                raise ExternalServiceError(
                    "Yandex response exceeds buffer size limit", code="response_too_large"
                )
            chunks.append(chunk)
        return b"".join(chunks)
