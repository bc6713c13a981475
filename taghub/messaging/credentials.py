# taghub/messaging/credentials.py
"""Hub connection strings and shared access signatures."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote_plus

from taghub.core.errors import CredentialError

HUB_DOMAIN = "azure-devices.net"


@dataclass(frozen=True)
class ConnectionString:
    host_name: str
    device_id: str
    shared_access_key: str

    def __str__(self) -> str:
        return (
            f"HostName={self.host_name};"
            f"DeviceId={self.device_id};"
            f"SharedAccessKey={self.shared_access_key}"
        )

    def __repr__(self) -> str:
        return f"ConnectionString(host_name='{self.host_name}', device_id='{self.device_id}')"

    @property
    def resource_uri(self) -> str:
        return f"{self.host_name}/devices/{self.device_id}"


def hub_host_name(hub_name: str) -> str:
    return f"{hub_name}.{HUB_DOMAIN}"


def build_connection_string(hub_name: str, device_name: str, key: str) -> str:
    if not hub_name or not device_name or not key:
        raise CredentialError(
            "Connection string needs hub name, device name and key.",
            details={"hub_name": hub_name, "device_name": device_name},
        )
    return str(ConnectionString(hub_host_name(hub_name), device_name, key))


def parse_connection_string(raw: str) -> ConnectionString:
    """
    Parse `HostName=...;DeviceId=...;SharedAccessKey=...`.

    Values may contain '=' (base64 padding), so only the first '=' of
    each segment separates key and value.
    """
    parts: Dict[str, str] = {}
    for segment in str(raw).strip().split(";"):
        if not segment:
            continue
        name, sep, value = segment.partition("=")
        if not sep:
            raise CredentialError(
                f"Malformed connection string segment '{name}'.",
                hint="Expected HostName=<hub>.azure-devices.net;DeviceId=<name>;SharedAccessKey=<key>",
            )
        parts[name.strip()] = value.strip()

    missing = [k for k in ("HostName", "DeviceId", "SharedAccessKey") if not parts.get(k)]
    if missing:
        raise CredentialError(
            f"Connection string is missing {missing}.",
            hint="Expected HostName=<hub>.azure-devices.net;DeviceId=<name>;SharedAccessKey=<key>",
        )

    return ConnectionString(
        host_name=parts["HostName"],
        device_id=parts["DeviceId"],
        shared_access_key=parts["SharedAccessKey"],
    )


def generate_sas_token(
    resource_uri: str,
    key: str,
    *,
    ttl_s: int = 3600,
    now: Optional[float] = None,
) -> str:
    """
    Build a device shared access signature:

        SharedAccessSignature sr=<uri>&sig=<signature>&se=<expiry>

    signature = base64(HMAC-SHA256(base64decode(key), "<uri>\\n<expiry>"))
    """
    try:
        secret = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError):
        raise CredentialError(
            "Shared access key is not valid base64.",
            hint="Copy the device primary key from the hub.",
        ) from None

    expiry = int((time.time() if now is None else now) + ttl_s)
    encoded_uri = quote_plus(resource_uri)
    to_sign = f"{encoded_uri}\n{expiry}".encode("utf-8")
    signature = base64.b64encode(hmac.new(secret, to_sign, hashlib.sha256).digest())

    return (
        "SharedAccessSignature "
        f"sr={encoded_uri}&sig={quote_plus(signature.decode('ascii'))}&se={expiry}"
    )
