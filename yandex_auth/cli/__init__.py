"""Command line interface for the Yandex sign-in demo server."""
