"""Centralized exception hierarchy for OctoSwitch.

All domain and service exceptions inherit from :class:`OctoSwitchError` so
that callers can catch a single base class when they need a broad safety net,
yet still match on specific subclasses where narrower handling is
appropriate.

Hierarchy
---------
::

    OctoSwitchError (base)
    ├── ValidationError          (bad input from caller)
    ├── NotFoundError            (entity does not exist)
    ├── ServiceError             (business-logic failure)
    │   └── RepositoryError      (schedule store / persistence)
    ├── DeviceError              (device communication)
    │   └── ActuationError       (device refused or failed an action)
    └── ConfigurationError       (missing / invalid config)
"""

from __future__ import annotations


class OctoSwitchError(Exception):
    """Base exception for all OctoSwitch errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class ValidationError(OctoSwitchError):
    """Caller supplied invalid or incomplete input."""


class NotFoundError(OctoSwitchError):
    """Requested entity does not exist."""


class ServiceError(OctoSwitchError):
    """Business-logic failure in a service method."""


class RepositoryError(ServiceError):
    """Schedule store / persistence layer failure."""


class DeviceError(OctoSwitchError):
    """Device communication or device-protocol failure."""


class ActuationError(DeviceError):
    """A device could not perform the requested action."""

    def __init__(self, message: str = "", *, device_id: str | None = None, detail: dict | None = None) -> None:
        super().__init__(message, detail=detail)
        self.device_id = device_id


class ConfigurationError(OctoSwitchError):
    """Missing or invalid application configuration."""
