"""ASGI middleware hosting the Yandex sign-in flow."""

import asyncio
import contextlib
import logging

import httpx
from starlette.requests import ClientDisconnect, HTTPConnection, Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from yandex_auth.application.handler import YandexAuthenticationHandler
from yandex_auth.config import Config
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.model.ticket import AuthenticationChallenge
from yandex_auth.domain.auth.port.data_protector import DataProtector
from yandex_auth.domain.auth.port.provider import YandexAuthenticationProvider
from yandex_auth.domain.auth.service.state import PropertiesDataFormat
from yandex_auth.domain.shared.error import ConfigurationError
from yandex_auth.infrastructure.auth.backchannel import HttpxBackchannel, build_backchannel_client
from yandex_auth.infrastructure.auth.cookie import JwtCookieSignIn
from yandex_auth.infrastructure.auth.protector import state_protector
from yandex_auth.options import YandexAuthenticationOptions

logger = logging.getLogger(__name__)

CHALLENGE_STATE_KEY = "yandex_auth.challenge"

# Sign-in type used when neither the options nor the host name one
DEFAULT_SIGN_IN_AS_TYPE = "ExternalCookie"


def challenge(
    connection: HTTPConnection,
    properties: AuthenticationProperties | None = None,
    *authentication_types: str,
) -> None:
    """Ask the authentication middlewares to challenge the current request.

    Downstream code calls this and then answers 401. Without authentication
    types only active middlewares respond; naming "Yandex" (or the configured
    authentication type) also reaches a passive one.
    """
    connection.scope.setdefault("state", {})[CHALLENGE_STATE_KEY] = AuthenticationChallenge(
        authentication_types=tuple(authentication_types),
        properties=properties or AuthenticationProperties(),
    )


async def _wait_for_disconnect(receive: Receive, buffered: list[Message]) -> None:
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return
        buffered.append(message)


def _replay(buffered: list[Message], receive: Receive) -> Receive:
    async def wrapper() -> Message:
        if buffered:
            return buffered.pop(0)
        return await receive()

    return wrapper


def _with_headers(send: Send, headers: list[tuple[bytes, bytes]]) -> Send:
    async def wrapper(message: Message) -> None:
        if message["type"] == "http.response.start" and headers:
            message = {**message, "headers": [*message.get("headers", []), *headers]}
        await send(message)

    return wrapper


class YandexAuthenticationMiddleware:
    """Pure ASGI middleware: answers the callback path, turns 401s into redirects.

    Options are validated and collaborators resolved once, here; every
    request then gets its own YandexAuthenticationHandler.
    """

    def __init__(
        self,
        app: ASGIApp,
        options: YandexAuthenticationOptions,
        *,
        data_protector: DataProtector | None = None,
        http_client: httpx.AsyncClient | None = None,
        default_sign_in_as_type: str | None = None,
    ) -> None:
        if app is None:
            raise ConfigurationError("app must be provided", code="missing_app")
        if options is None:
            raise ConfigurationError("options must be provided", code="missing_options")
        options.validate_for_startup()

        state_data_format = options.state_data_format
        if state_data_format is None:
            # Default keys come from the settings layer, shared by all workers
            protector = data_protector or state_protector(
                Config().data_protection.secret, options.authentication_type
            )
            state_data_format = PropertiesDataFormat(_protector=protector)

        self.app = app
        self.options = options.model_copy(
            update={
                "provider": options.provider or YandexAuthenticationProvider(),
                "state_data_format": state_data_format,
                "sign_in_as_type": options.sign_in_as_type
                or default_sign_in_as_type
                or DEFAULT_SIGN_IN_AS_TYPE,
                "sign_in": options.sign_in or JwtCookieSignIn(Config().cookie),
            }
        )

        self._owns_client = http_client is None
        self._http = http_client or build_backchannel_client(
            options.backchannel_timeout,
            transport=options.backchannel_transport,
            verify=options.backchannel_certificate_validator,
        )
        self._backchannel = HttpxBackchannel(self._http, options.backchannel_timeout)

        logger.info(
            "Yandex authentication enabled: type=%s, mode=%s, callback=%s",
            self.options.authentication_type,
            self.options.authentication_mode,
            self.options.callback_path,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _handler(self, request: Request) -> YandexAuthenticationHandler:
        options = self.options
        assert options.provider is not None
        assert options.state_data_format is not None
        assert options.sign_in is not None
        return YandexAuthenticationHandler(
            request,
            options,
            self._backchannel,
            state_format=options.state_data_format,
            hook=options.provider,
            sign_in=options.sign_in,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, self._lifespan_send(send))
            return
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope.setdefault("state", {})
        request = Request(scope, receive=receive)
        handler = self._handler(request)

        if handler.is_callback_request:
            buffered: list[Message] = []
            try:
                response = await self._until_disconnect(
                    handler.invoke_reply_path(), receive, buffered
                )
            except ClientDisconnect:
                logger.warning("Client disconnected during Yandex callback; login abandoned")
                return
            if response is not None:
                await response(scope, receive, send)
                return
            # No redirect target: the next application answers the callback
            await self.app(
                scope, _replay(buffered, receive), _with_headers(send, handler.pass_through_headers)
            )
            return

        challenged = False

        async def send_wrapper(message: Message) -> None:
            nonlocal challenged
            if challenged:
                # Body of the replaced 401 response
                return
            if message["type"] == "http.response.start" and message["status"] == 401:
                response = await handler.apply_response_challenge(
                    401, scope["state"].get(CHALLENGE_STATE_KEY)
                )
                if response is not None:
                    challenged = True
                    await response(scope, receive, send)
                    return
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _lifespan_send(self, send: Send) -> Send:
        async def wrapper(message: Message) -> None:
            if message["type"] == "lifespan.shutdown.complete":
                await self.aclose()
            await send(message)

        return wrapper

    @staticmethod
    async def _until_disconnect(work, receive: Receive, buffered: list[Message] | None = None):
        """Run the callback work, cancelling it if the client goes away.

        Messages other than the disconnect read meanwhile are appended to
        ``buffered``.

        Raises:
            ClientDisconnect: If the client disconnected before the work finished
        """
        task = asyncio.ensure_future(work)
        watcher = asyncio.ensure_future(
            _wait_for_disconnect(receive, buffered if buffered is not None else [])
        )
        try:
            await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            watcher.cancel()
            raise

        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            raise ClientDisconnect()

        return task.result()
