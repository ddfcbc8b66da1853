"""JWT cookie sign-in for identities produced by the Yandex flow."""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from starlette.requests import HTTPConnection
from starlette.responses import Response

from yandex_auth.config import CookieConfig
from yandex_auth.domain.auth.model.claims import Claim, ClaimsIdentity, ClaimTypes
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.port.sign_in import SignInManager

logger = logging.getLogger(__name__)

AUDIENCE = "yandex_auth"


class JwtCookieSignIn(SignInManager):
    """Persists a signed-in identity as an HS256 JWT in an HttpOnly cookie.

    The token is self-contained; nothing is stored server side. Cookies are
    session cookies unless the authentication properties ask for persistence.
    """

    def __init__(self, config: CookieConfig) -> None:
        self._config = config
        self._secret = config.secret
        if not self._secret:
            logger.warning(
                "No sign-in cookie secret configured; using a per-process key. "
                "Sign-ins will not survive a restart."
            )
            self._secret = secrets.token_urlsafe(32)

    @property
    def cookie_name(self) -> str:
        return self._config.name

    def create_token(
        self,
        identity: ClaimsIdentity,
        properties: AuthenticationProperties | None = None,
    ) -> str:
        """Encode an identity as a JWT."""
        now = datetime.now(UTC)
        expires_at = (properties.expires_utc if properties else None) or (
            now + timedelta(minutes=self._config.expire_minutes)
        )

        subject = identity.find_first(ClaimTypes.NAME_IDENTIFIER)
        email = identity.find_first(ClaimTypes.EMAIL)
        payload: dict[str, Any] = {
            "sub": subject.value if subject else "",
            "name": identity.name,
            "email": email.value if email else None,
            "amr": identity.authentication_type,
            "claims": [[c.type, c.value, c.value_type, c.issuer] for c in identity],
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret, algorithm=self._config.algorithm)

    def read_token(self, token: str) -> ClaimsIdentity:
        """Decode a JWT back into an identity.

        Raises:
            jwt.InvalidTokenError: If token is invalid or expired
        """
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._config.algorithm],
            audience=AUDIENCE,
        )
        claims = [Claim(*entry) for entry in payload.get("claims", [])]
        return ClaimsIdentity(payload.get("amr"), claims)

    async def sign_in(
        self,
        response: Response,
        identity: ClaimsIdentity,
        properties: AuthenticationProperties,
    ) -> None:
        token = self.create_token(identity, properties)
        max_age = self._config.expire_minutes * 60 if properties.is_persistent else None
        response.set_cookie(
            self._config.name,
            token,
            max_age=max_age,
            httponly=True,
            secure=self._config.secure,
            samesite="lax",
        )
        logger.info("Signed in %s as %s", identity.name, identity.authentication_type)

    def authenticate(self, connection: HTTPConnection) -> ClaimsIdentity | None:
        """Return the identity carried by the request's cookie, or None."""
        token = connection.cookies.get(self._config.name)
        if not token:
            return None
        try:
            return self.read_token(token)
        except jwt.InvalidTokenError as e:
            logger.warning("Sign-in cookie rejected: %s", e)
            return None

    def sign_out(self, response: Response) -> None:
        response.delete_cookie(self._config.name, httponly=True, samesite="lax")
