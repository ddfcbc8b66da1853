"""Yandex authentication services."""

from .identity import build_identity
from .state import STATE_EXPIRY_SECONDS, PropertiesDataFormat

__all__ = ["STATE_EXPIRY_SECONDS", "PropertiesDataFormat", "build_identity"]
