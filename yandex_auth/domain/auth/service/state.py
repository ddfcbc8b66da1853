"""State codec: protects authentication properties for the provider round trip."""

import binascii
import json
import logging
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode

from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.domain.auth.port.data_protector import DataProtector
from yandex_auth.domain.shared.error import DataProtectionError, InvalidStateError
from yandex_auth.domain.shared.service import Service

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

# How long a login may stay at the provider before its state is rejected (15 minutes)
STATE_EXPIRY_SECONDS = 900


def _b64encode(data: bytes) -> str:
    return urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    """Strict base64url decoding: the input must be the canonical encoding."""
    try:
        raw = urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as e:
        raise InvalidStateError("State is not valid base64url", code="invalid_state") from e
    if _b64encode(raw) != text:
        raise InvalidStateError("State is not canonical base64url", code="invalid_state")
    return raw


class PropertiesDataFormat(Service):
    """Serializes AuthenticationProperties into an opaque, tamper-evident string.

    Layout: base64url(protect(json({"v": 1, "exp": <unix>, "items": {...}})))
    """

    _protector: DataProtector
    _lifetime_seconds: int = STATE_EXPIRY_SECONDS

    def protect(self, properties: AuthenticationProperties) -> str:
        """Encode properties for the state round trip."""
        payload = {
            "v": FORMAT_VERSION,
            "exp": int(time.time()) + self._lifetime_seconds,
            "items": dict(properties.items),
        }
        payload_bytes = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode()
        return _b64encode(self._protector.protect(payload_bytes))

    def unprotect(self, protected: str | None) -> AuthenticationProperties | None:
        """Decode a state string, returning None if it is missing, altered or expired."""
        if not protected:
            logger.warning("Authentication state missing")
            return None

        try:
            return self._unprotect(protected)
        except (InvalidStateError, DataProtectionError) as e:
            logger.warning("Authentication state rejected: %s", e.message)
            return None

    def _unprotect(self, protected: str) -> AuthenticationProperties:
        payload_bytes = self._protector.unprotect(_b64decode(protected))

        try:
            payload = json.loads(payload_bytes)
        except ValueError as e:
            raise InvalidStateError("State payload is not JSON", code="invalid_state") from e

        if not isinstance(payload, dict) or payload.get("v") != FORMAT_VERSION:
            raise InvalidStateError("Unsupported state format", code="invalid_state")

        expires_at = payload.get("exp")
        if not isinstance(expires_at, int) or expires_at < time.time():
            raise InvalidStateError("State expired", code="state_expired")

        items = payload.get("items")
        if not isinstance(items, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in items.items()
        ):
            raise InvalidStateError("State items malformed", code="invalid_state")

        return AuthenticationProperties(items=items)

    # Aliases matching the codec vocabulary used by the flow controller
    encode = protect
    decode = unprotect
