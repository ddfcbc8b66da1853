"""Base class for domain services."""

from dataclasses import dataclass
from typing import dataclass_transform


@dataclass_transform()
class _ServiceMeta(type):
    """Turns every subclass of Service into a frozen dataclass."""

    def __new__(mcs, name: str, bases: tuple, namespace: dict):
        cls = super().__new__(mcs, name, bases, namespace)
        if any(isinstance(b, mcs) for b in bases):
            return dataclass(frozen=True)(cls)
        return cls


class Service(metaclass=_ServiceMeta):
    """Base class for domain services.

    Services are built once at startup and shared by concurrent requests,
    so their collaborators are fixed after construction.
    """
