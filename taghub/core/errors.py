# taghub/core/errors.py
from __future__ import annotations


class TagHubError(Exception):
    """
    Base class for all expected operational errors in taghub.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no hardware access yet)
# ---------------------------------------------------------------------------

class ConfigError(TagHubError):
    """
    Fleet configuration is invalid or inconsistent.

    Examples:
      - missing config file or malformed YAML
      - unknown channel key in the channel flags
      - device entry without id/name/key
    """
    code = "config_error"


class DriverError(TagHubError):
    """
    Wireless driver could not be resolved or constructed.

    Examples:
      - unknown driver key
      - driver constructor rejected its parameters
    """
    code = "driver_error"


class CredentialError(TagHubError):
    """
    Messaging credential is malformed (connection string, shared access key).
    """
    code = "credential_error"


# ---------------------------------------------------------------------------
# Device lifecycle errors
# ---------------------------------------------------------------------------

class DeviceConnectError(TagHubError):
    """
    Connection / service-setup handshake with a discovered device failed.

    Fatal to the current session attempt; never retried by the session.
    """
    code = "device_connect_error"


class ChannelConfigError(TagHubError):
    """
    Enabling, subscribing or disabling a sensor channel failed.

    Aborts the remaining configuration sequence for that device.
    """
    code = "channel_config_error"


# ---------------------------------------------------------------------------
# Telemetry errors
# ---------------------------------------------------------------------------

class DeliveryError(TagHubError):
    """
    A telemetry message could not be handed to the cloud hub.

    Logged by the publisher only; the next tick proceeds independently.
    """
    code = "delivery_error"
