from __future__ import annotations

from typing import Optional


class ConfigurationError(Exception):
    """Raised at setup time; the server must not start serving traffic."""


class DuplicateCatchAllError(ConfigurationError):
    pass


class NoHandlersError(ConfigurationError):
    pass


class RegistryFrozenError(ConfigurationError):
    pass


class EnvelopeValidationError(ValueError):
    """Per-call envelope failure. Absorbed by the dispatcher, only ever logged.

    `reason` is a short machine-readable tag ("invalid", "missing", ...),
    `details` keeps the underlying validator output when there is one.
    """

    def __init__(self, message: str, reason: str = "invalid", details: Optional[list] = None):
        super().__init__(message)
        self.reason = reason
        self.details = details or []
