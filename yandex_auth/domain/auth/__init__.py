"""Yandex authentication domain."""
