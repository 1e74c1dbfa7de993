"""Domain-level exceptions for developer records, subscriptions and delivery."""

from __future__ import annotations


class DevRadarError(Exception):
    """Base class for proximity core errors."""

    reason: str = "unknown"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class ValidationError(DevRadarError):
    """Malformed coordinates, id or tags; rejected before anything is indexed."""

    reason = "validation_error"


class NotFound(DevRadarError):
    reason = "not_found"


class DeveloperNotFound(NotFound):
    reason = "developer_not_found"


class SubscriptionNotFound(NotFound):
    reason = "subscription_not_found"


class ProtocolError(DevRadarError):
    """Malformed handshake or update message on the realtime channel."""

    reason = "protocol_error"


class DeliveryFailure(DevRadarError):
    """Push to a connection that is gone or refusing messages."""

    reason = "delivery_failed"
