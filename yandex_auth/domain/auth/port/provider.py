"""Provider hook: extension points invoked during the callback."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from yandex_auth.domain.auth.model.claims import ClaimsIdentity
from yandex_auth.domain.auth.model.profile import UserProfile
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.model.ticket import AuthenticationTicket
from yandex_auth.domain.shared.port import Port

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response


@dataclass
class AuthenticatedContext:
    """State handed to ``on_authenticated`` after token and profile were fetched.

    ``identity`` and ``properties`` may be mutated or replaced; whatever they
    hold when the hook returns goes into the ticket.
    """

    request: "Request"
    profile: UserProfile
    access_token: str
    expires_in: timedelta | None
    identity: ClaimsIdentity
    properties: AuthenticationProperties

    @property
    def user(self) -> dict[str, Any]:
        """Raw profile document."""
        return self.profile.raw


@dataclass
class ReturnEndpointContext:
    """State handed to ``on_return`` once per callback, successful or not."""

    request: "Request"
    ticket: AuthenticationTicket
    sign_in_as_type: str | None = None
    redirect_uri: str | None = None
    response: "Response | None" = None
    identity: ClaimsIdentity | None = field(init=False)
    properties: AuthenticationProperties | None = field(init=False)
    _completed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.identity = self.ticket.identity
        self.properties = self.ticket.properties

    @property
    def is_request_completed(self) -> bool:
        return self._completed

    def request_completed(self) -> None:
        """Tell the middleware the hook produced the final response itself."""
        self._completed = True


@runtime_checkable
class AuthenticationHook(Port, Protocol):
    """Extension points for the embedding application."""

    async def on_authenticated(self, context: AuthenticatedContext) -> None:
        """Called once per successful token and profile exchange."""
        ...

    async def on_return(self, context: ReturnEndpointContext) -> None:
        """Called once per callback, before sign-in and the final redirect."""
        ...


class YandexAuthenticationProvider(AuthenticationHook):
    """Default hook: delegates to injected callables, does nothing otherwise."""

    def __init__(
        self,
        on_authenticated: Callable[[AuthenticatedContext], Awaitable[None]] | None = None,
        on_return: Callable[[ReturnEndpointContext], Awaitable[None]] | None = None,
    ) -> None:
        self._on_authenticated = on_authenticated
        self._on_return = on_return

    async def on_authenticated(self, context: AuthenticatedContext) -> None:
        if self._on_authenticated is not None:
            await self._on_authenticated(context)

    async def on_return(self, context: ReturnEndpointContext) -> None:
        if self._on_return is not None:
            await self._on_return(context)
