"""HMAC data protector for the state codec."""

import hashlib
import hmac
import logging
import secrets

from yandex_auth.domain.auth.port.data_protector import DataProtector
from yandex_auth.domain.shared.error import ConfigurationError, DataProtectionError

logger = logging.getLogger(__name__)

_SIGNATURE_SIZE = hashlib.sha256().digest_size


class HmacDataProtector(DataProtector):
    """Signs payloads with HMAC-SHA256 under a purpose-specific subkey.

    The subkey is derived from the application secret and the purpose strings,
    so a payload protected for one purpose (e.g. one authentication type) is
    rejected by a protector created for another.
    """

    def __init__(self, secret: str | bytes, *purposes: str) -> None:
        if not secret:
            raise ConfigurationError("Data protection secret must not be empty")
        key = secret.encode() if isinstance(secret, str) else secret
        self._purposes = purposes
        self._key = hmac.new(key, "\x00".join(purposes).encode(), hashlib.sha256).digest()

    @classmethod
    def ephemeral(cls, *purposes: str) -> "HmacDataProtector":
        """Protector keyed with a random secret that lives as long as the process."""
        logger.warning(
            "No data protection secret configured; using a per-process key. "
            "Logins started on another worker or before a restart will fail."
        )
        return cls(secrets.token_bytes(32), *purposes)

    def create_protector(self, *purposes: str) -> "HmacDataProtector":
        """Derive a protector for a narrower purpose."""
        return HmacDataProtector(self._key, *purposes)

    def protect(self, data: bytes) -> bytes:
        signature = hmac.new(self._key, data, hashlib.sha256).digest()
        return data + signature

    def unprotect(self, protected: bytes) -> bytes:
        if len(protected) < _SIGNATURE_SIZE:
            raise DataProtectionError("Protected payload too short", code="invalid_payload")

        data, signature = protected[:-_SIGNATURE_SIZE], protected[-_SIGNATURE_SIZE:]
        expected = hmac.new(self._key, data, hashlib.sha256).digest()
        if not hmac.compare_digest(signature, expected):
            raise DataProtectionError("Signature verification failed", code="invalid_signature")
        return data


STATE_PURPOSE = "yandex_auth.YandexAuthenticationMiddleware"


def state_protector(secret: str, authentication_type: str) -> HmacDataProtector:
    """Protector for the state of one authentication type; ephemeral if no secret."""
    purposes = (STATE_PURPOSE, authentication_type, "v1")
    if not secret:
        return HmacDataProtector.ephemeral(*purposes)
    return HmacDataProtector(secret, *purposes)
