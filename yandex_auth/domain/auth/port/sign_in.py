"""Sign-in port: how the host persists an identity once the flow completes."""

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from yandex_auth.domain.auth.model.claims import ClaimsIdentity
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.shared.port import Port

if TYPE_CHECKING:
    from starlette.responses import Response


@runtime_checkable
class SignInManager(Port, Protocol):
    """Host sign-in primitive invoked with the final identity."""

    @abstractmethod
    async def sign_in(
        self,
        response: "Response",
        identity: ClaimsIdentity,
        properties: AuthenticationProperties,
    ) -> None:
        """Attach the signed-in identity to ``response`` (cookie, header, ...)."""
        ...
