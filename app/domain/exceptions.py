"""Centralized exception hierarchy for the IoT security hub.

All pipeline and collaborator exceptions inherit from :class:`IoTHubError`
so that the transport layer can catch a single base class, yet still match
on specific subclasses where narrower handling is appropriate.

Every failure is scoped to a single message; nothing here is fatal to the
process.

Hierarchy
---------
::

    IoTHubError (base)
    ├── DecodeError                 (malformed payload, dropped, not recorded)
    ├── RateLimitExceeded           (recorded as anomaly + quarantine)
    ├── ValidationError             (recorded as quarantine only)
    ├── QuarantinedDeviceRejected   (no state change)
    ├── StoreError                  (device / anomaly store failure)
    ├── NotificationError           (alert backend failure, never propagated)
    └── ConfigurationError          (missing / invalid config)
"""

from __future__ import annotations


class IoTHubError(Exception):
    """Base exception for all hub errors.

    Parameters
    ----------
    message:
        Human-readable description, logged by the caller.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class DecodeError(IoTHubError):
    """Payload could not be decoded into a reading."""


class RateLimitExceeded(IoTHubError):
    """Device sent more messages than its admission window allows."""

    def __init__(self, device_id: str, count: int, limit: int, window_seconds: float) -> None:
        super().__init__(
            f"rate limit exceeded for {device_id}: {count} messages in {window_seconds:g}s (max {limit})",
            detail={"device_id": device_id, "count": count, "limit": limit, "window_seconds": window_seconds},
        )
        self.device_id = device_id
        self.count = count
        self.limit = limit


class ValidationError(IoTHubError):
    """Reading failed structural validation (field ranges)."""

    def __init__(self, message: str, *, errors: list[str] | None = None, device_id: str | None = None) -> None:
        super().__init__(message, detail={"device_id": device_id, "errors": list(errors or [])})
        self.errors = list(errors or [])
        self.device_id = device_id


class QuarantinedDeviceRejected(IoTHubError):
    """Message dropped because its device is quarantined."""

    def __init__(self, device_id: str) -> None:
        super().__init__("device quarantined", detail={"device_id": device_id})
        self.device_id = device_id


class StoreError(IoTHubError):
    """Device or anomaly store failure."""


class NotificationError(IoTHubError):
    """An alert backend failed to deliver a message."""


class ConfigurationError(IoTHubError):
    """Missing or invalid application configuration."""
