"""Data protector port used by the state codec."""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from yandex_auth.domain.shared.port import Port


@runtime_checkable
class DataProtector(Port, Protocol):
    """Tamper-evident protection of opaque payloads.

    Implementations are keyed once at startup and must be safe for use by
    concurrent requests.
    """

    @abstractmethod
    def protect(self, data: bytes) -> bytes:
        """Return a protected form of ``data``."""
        ...

    @abstractmethod
    def unprotect(self, protected: bytes) -> bytes:
        """Recover the original payload.

        Raises:
            DataProtectionError: If the payload was altered or protected under another key
        """
        ...
