"""Per-request flow controller for the Yandex OAuth2 authorization code login.

A handler is created for every inbound HTTP request and drives the state
machine below. Nothing on it is shared with other requests; the immutable
options and the backchannel are the only process-wide collaborators.

    IDLE -> CHALLENGE_ISSUED                     (401 + matching challenge)
    IDLE -> CALLBACK_PENDING -> EXCHANGING -> COMPLETED_SUCCESS | COMPLETED_FAILURE
"""

import hmac
import logging
import secrets
from base64 import urlsafe_b64encode
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import quote

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import Scope

from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.model.ticket import (
    AuthenticationChallenge,
    AuthenticationTicket,
    lookup_challenge,
)
from yandex_auth.domain.auth.port.backchannel import Backchannel
from yandex_auth.domain.auth.port.provider import (
    AuthenticatedContext,
    AuthenticationHook,
    ReturnEndpointContext,
)
from yandex_auth.domain.auth.port.sign_in import SignInManager
from yandex_auth.domain.auth.service.identity import build_identity
from yandex_auth.domain.auth.service.state import PropertiesDataFormat
from yandex_auth.domain.shared.error import YandexAuthError
from yandex_auth.infrastructure.auth.backchannel import AUTHORIZATION_ENDPOINT
from yandex_auth.options import YandexAuthenticationOptions

logger = logging.getLogger(__name__)

CORRELATION_PREFIX = ".yandex.correlation."
STATE_COOKIE_PREFIX = ".yandex.state."


class FlowState(StrEnum):
    IDLE = "idle"
    CHALLENGE_ISSUED = "challenge_issued"
    CALLBACK_PENDING = "callback_pending"
    EXCHANGING = "exchanging"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_FAILURE = "completed_failure"


def request_path(scope: Scope) -> str:
    """Path of the request within the application's root path."""
    path = scope.get("path", "")
    root_path = scope.get("root_path", "")
    if root_path and (path == root_path or path.startswith(root_path + "/")):
        path = path[len(root_path) :] or "/"
    return path


def add_query_string(uri: str, name: str, value: str) -> str:
    """Append ``name=value`` to a URI, keeping any fragment at the end."""
    base, sep, fragment = uri.partition("#")
    joiner = "&" if "?" in base else "?"
    result = f"{base}{joiner}{quote(name, safe='')}={quote(value, safe='')}"
    return f"{result}#{fragment}" if sep else result


@dataclass
class _CookieUpdate:
    name: str
    value: str | None  # None deletes the cookie


class YandexAuthenticationHandler:
    """Drives one request through the challenge or callback path."""

    def __init__(
        self,
        request: Request,
        options: YandexAuthenticationOptions,
        backchannel: Backchannel,
        state_format: PropertiesDataFormat,
        hook: AuthenticationHook,
        sign_in: SignInManager,
    ) -> None:
        self.request = request
        self.options = options
        self.state = FlowState.IDLE
        self._backchannel = backchannel
        self._state_format = state_format
        self._hook = hook
        self._sign_in = sign_in
        self._cookies: list[_CookieUpdate] = []
        # Set-Cookie headers for a callback the next application answers
        self.pass_through_headers: list[tuple[bytes, bytes]] = []

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def correlation_key(self) -> str:
        return CORRELATION_PREFIX + self.options.authentication_type

    @property
    def state_cookie_name(self) -> str:
        return STATE_COOKIE_PREFIX + self.options.authentication_type

    @property
    def is_callback_request(self) -> bool:
        return request_path(self.request.scope) == self.options.callback_path

    def _transition(self, state: FlowState) -> None:
        logger.debug("Yandex flow %s -> %s", self.state, state)
        self.state = state

    def _base_uri(self) -> str:
        url = self.request.url
        return f"{url.scheme}://{url.netloc}{self.request.scope.get('root_path', '')}"

    def _set_cookie(self, name: str, value: str) -> None:
        self._cookies.append(_CookieUpdate(name, value))

    def _delete_cookie(self, name: str) -> None:
        self._cookies.append(_CookieUpdate(name, None))

    def _finish(self, response: Response) -> Response:
        """Apply pending cookie writes and deletions to the outgoing response."""
        secure = self.request.url.scheme == "https"
        for update in self._cookies:
            if update.value is None:
                response.delete_cookie(update.name, secure=secure, httponly=True, samesite="lax")
            else:
                response.set_cookie(
                    update.name, update.value, secure=secure, httponly=True, samesite="lax"
                )
        self._cookies.clear()
        return response

    # -------------------------------------------------------------------------
    # Correlation (CSRF protection, RFC 6749 section 10.12)
    # -------------------------------------------------------------------------

    def generate_correlation_id(self, properties: AuthenticationProperties) -> None:
        correlation_id = urlsafe_b64encode(secrets.token_bytes(32)).rstrip(b"=").decode()
        properties.items[self.correlation_key] = correlation_id
        self._set_cookie(self.correlation_key, correlation_id)

    def validate_correlation_id(self, properties: AuthenticationProperties) -> bool:
        key = self.correlation_key
        correlation_cookie = self.request.cookies.get(key)
        if not correlation_cookie or not correlation_cookie.strip():
            logger.warning("%s cookie not found.", key)
            return False

        self._delete_cookie(key)

        correlation_extra = properties.items.pop(key, None)
        if correlation_extra is None:
            logger.warning("%s state property not found.", key)
            return False

        if not hmac.compare_digest(correlation_cookie.encode(), correlation_extra.encode()):
            logger.warning("%s correlation cookie and state property mismatch.", key)
            return False

        return True

    # -------------------------------------------------------------------------
    # Challenge: 401 -> redirect to Yandex
    # -------------------------------------------------------------------------

    async def apply_response_challenge(
        self,
        status_code: int,
        challenge: AuthenticationChallenge | None,
    ) -> Response | None:
        """Turn a 401 response into a redirect to the Yandex consent page.

        Returns None (leaving the response untouched) when the status is not
        401 or when this middleware is not the one being challenged.
        """
        if status_code != 401:
            return None

        challenge = lookup_challenge(
            challenge, self.options.authentication_type, self.options.authentication_mode
        )
        if challenge is None:
            return None

        base_uri = self._base_uri()
        current_uri = base_uri + request_path(self.request.scope)
        if self.request.url.query:
            current_uri += "?" + self.request.url.query
        redirect_uri = base_uri + self.options.callback_path

        properties = challenge.properties
        if not properties.redirect_uri:
            properties.redirect_uri = current_uri

        self.generate_correlation_id(properties)
        self._set_cookie(self.state_cookie_name, self._state_format.protect(properties))

        # The configured scope is not part of the authorization request
        authorization_endpoint = (
            f"{AUTHORIZATION_ENDPOINT}"
            f"?client_id={quote(self.options.app_id, safe='')}"
            "&response_type=code"
        )
        logger.debug(
            "Challenging with Yandex: return to %s via %s (scope=%s)",
            properties.redirect_uri,
            redirect_uri,
            self.options.scope,
        )

        self._transition(FlowState.CHALLENGE_ISSUED)
        return self._finish(RedirectResponse(authorization_endpoint, status_code=302))

    # -------------------------------------------------------------------------
    # Callback: /signin-yandex?code=...
    # -------------------------------------------------------------------------

    async def invoke(self) -> Response | None:
        """Answer the callback, or return None to let the next application respond."""
        if not self.is_callback_request:
            return None
        return await self.invoke_reply_path()

    async def invoke_reply_path(self) -> Response | None:
        """Finish the login started by the challenge.

        Returns None when the request is neither completed by the hook nor has
        a redirect target; the next application then answers it, with the
        flow cookies from ``pass_through_headers`` added.
        """
        self._transition(FlowState.CALLBACK_PENDING)

        ticket = await self.authenticate()
        if ticket is None or ticket.properties is None:
            logger.warning("Invalid return state, unable to redirect.")
            self._transition(FlowState.COMPLETED_FAILURE)
            return self._finish(Response(status_code=500))

        context = ReturnEndpointContext(
            request=self.request,
            ticket=ticket,
            sign_in_as_type=self.options.sign_in_as_type,
            redirect_uri=ticket.properties.redirect_uri,
        )

        carrier = Response()
        try:
            response = await self._complete(context, carrier)
        except Exception as e:
            logger.exception("Yandex sign-in failed: %s", e)
            context.identity = None
            carrier = Response()
            response = self._redirect_response(context)

        self._transition(
            FlowState.COMPLETED_SUCCESS
            if context.identity is not None
            else FlowState.COMPLETED_FAILURE
        )
        if response is None:
            self._finish(carrier)
            self.pass_through_headers = [
                (name, value) for name, value in carrier.raw_headers if name == b"set-cookie"
            ]
            return None
        return self._finish(response)

    async def _complete(
        self, context: ReturnEndpointContext, carrier: Response
    ) -> Response | None:
        await self._hook.on_return(context)

        if context.is_request_completed:
            response = context.response or Response()
        else:
            response = self._redirect_response(context)

        if context.sign_in_as_type and context.identity is not None:
            grant_identity = context.identity
            if grant_identity.authentication_type != context.sign_in_as_type:
                grant_identity = grant_identity.with_authentication_type(context.sign_in_as_type)
            await self._sign_in.sign_in(
                response if response is not None else carrier,
                grant_identity,
                context.properties or AuthenticationProperties(),
            )

        return response

    @staticmethod
    def _redirect_response(context: ReturnEndpointContext) -> Response | None:
        if context.redirect_uri is None:
            return None

        redirect_uri = context.redirect_uri
        if context.identity is None:
            # Hint to the target page that sign-in failed
            redirect_uri = add_query_string(redirect_uri, "error", "access_denied")
        return RedirectResponse(redirect_uri, status_code=302)

    def _read_state(self) -> str | None:
        """State from the ``state`` query parameter, else from the challenge cookie."""
        state_cookie = self.request.cookies.get(self.state_cookie_name)
        if state_cookie is not None:
            # Consumed exactly once
            self._delete_cookie(self.state_cookie_name)

        values = self.request.query_params.getlist("state")
        if len(values) == 1:
            return values[0]
        return state_cookie

    async def authenticate(self) -> AuthenticationTicket | None:
        """Build the ticket for the callback.

        Returns None when the state cannot be decoded. Every other failure
        yields a ticket without identity that keeps whatever properties were
        decoded, so the user can be sent back to the page they came from.
        """
        properties: AuthenticationProperties | None = None

        try:
            code = ""
            values = self.request.query_params.getlist("code")
            if len(values) == 1:
                code = values[0]

            properties = self._state_format.unprotect(self._read_state())
            if properties is None:
                return None

            if not self.validate_correlation_id(properties):
                return AuthenticationTicket(None, properties)

            self._transition(FlowState.EXCHANGING)

            token = await self._backchannel.exchange_code(
                self.options.app_id, self.options.app_secret, code
            )
            profile = await self._backchannel.get_user_profile(token.access_token)

            context = AuthenticatedContext(
                request=self.request,
                profile=profile,
                access_token=token.access_token,
                expires_in=token.expires_in,
                identity=build_identity(profile, self.options.authentication_type),
                properties=properties,
            )
            await self._hook.on_authenticated(context)

            return AuthenticationTicket(context.identity, context.properties)

        except YandexAuthError as e:
            logger.error("Yandex authentication failed: %s", e.message)
        except Exception as e:
            logger.exception("Yandex authentication failed: %s", e)

        return AuthenticationTicket(None, properties)
