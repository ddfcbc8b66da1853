"""Backchannel port for the two server-to-server calls to Yandex."""

from abc import abstractmethod
from typing import Protocol

from yandex_auth.domain.auth.model.profile import TokenResponse, UserProfile
from yandex_auth.domain.shared.port import Port


class Backchannel(Port, Protocol):
    """Outbound calls made while completing a login.

    Implementations are adapters in infrastructure/ (e.g., HttpxBackchannel).
    """

    @abstractmethod
    async def exchange_code(self, app_id: str, app_secret: str, code: str) -> TokenResponse:
        """Exchange an authorization code for an access token.

        Raises:
            ExternalServiceError: On transport failure, timeout or non-2xx response
        """
        ...

    @abstractmethod
    async def get_user_profile(self, access_token: str) -> UserProfile:
        """Fetch the profile of the user the access token was issued for.

        Raises:
            ExternalServiceError: On transport failure, timeout or non-2xx response
        """
        ...
