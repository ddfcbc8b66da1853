"""Error hierarchy for yandex_auth.

Error layers:
- YandexAuthError: Base class for all yandex_auth errors
- DomainError: Protocol violations detected while processing a login (bad or expired state)
- InfrastructureError: Backchannel, data protection and configuration failures

None of these cross the middleware boundary at request time: the flow controller
catches them and degrades to a failed ticket. ConfigurationError is the exception,
it is raised at setup time so misconfiguration fails fast.
"""


class YandexAuthError(Exception):
    """Base class for all yandex_auth errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (protocol violations)
# =============================================================================


class DomainError(YandexAuthError):
    """Base class for protocol errors."""


class InvalidStateError(DomainError):
    """The state blob could not be decoded or has expired."""


# =============================================================================
# Infrastructure Errors
# =============================================================================


class InfrastructureError(YandexAuthError):
    """Base class for infrastructure/system errors."""


class ExternalServiceError(InfrastructureError):
    """Yandex token or profile endpoint is unavailable or failed."""


class DataProtectionError(InfrastructureError):
    """Protected payload failed verification."""


class ConfigurationError(InfrastructureError, ValueError):
    """System misconfiguration detected at setup time."""
