"""Data access layer repositories."""

from . import integration_credentials, runs

__all__ = [
    "integration_credentials",
    "runs",
]
