"""Peripheral device discovery.

The till lists printers, scanners and cloud sync targets through a
``DeviceProvider``. ``MockDeviceProvider`` serves lists handed to it at
construction; ``LiveDeviceProvider`` asks a device registry over HTTP.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Self

import httpx
import structlog

from tillpoint.domain.exceptions import DeviceProviderError
from tillpoint.infrastructure.config import settings

logger = structlog.get_logger()


class DeviceType(str, Enum):
    """Kind of peripheral."""

    PRINTER = "printer"
    SCANNER = "scanner"
    CLOUD = "cloud"


class DeviceStatus(str, Enum):
    """Connection status of a peripheral."""

    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class Device:
    """A selectable peripheral."""

    id: str
    name: str
    model: str
    status: DeviceStatus
    type: DeviceType

    @classmethod
    def from_api_response(cls, data: Mapping[str, Any]) -> Self:
        """Create from API response data.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If status or type is unknown.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            model=str(data.get("model", "")),
            status=DeviceStatus(data.get("status", DeviceStatus.DISCONNECTED.value)),
            type=DeviceType(data["type"]),
        )

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "model": self.model,
            "status": self.status.value,
            "type": self.type.value,
        }


class DeviceProvider(Protocol):
    """Source of device lists."""

    async def list_devices(self, device_type: DeviceType) -> list[Device]:
        """List devices of one type."""
        ...


def default_mock_devices() -> list[Device]:
    """Demo devices for tills without a registry."""
    rows = [
        ("printer-1", "Receipt Printer", "Epson TM-20", "connected", "printer"),
        ("printer-2", "Label Printer", "Brother QL-800", "disconnected", "printer"),
        ("printer-3", "Thermal Printer", "Star TSP143III", "connecting", "printer"),
        ("printer-4", "Mobile Printer", "Zebra ZQ520", "disconnected", "printer"),
        ("scanner-1", "Barcode Scanner", "Honeywell 1470", "connected", "scanner"),
        ("scanner-2", "QR Code Scanner", "Zebra DS2208", "disconnected", "scanner"),
        ("scanner-3", "Handheld Scanner", "Symbol LS2208", "connecting", "scanner"),
        ("scanner-4", "Wireless Scanner", "Datalogic QD2430", "disconnected", "scanner"),
        ("cloud-1", "Main Server", "AWS EC2", "connected", "cloud"),
        ("cloud-2", "Backup Server", "Digital Ocean", "disconnected", "cloud"),
        ("cloud-3", "Local Sync", "Synology NAS", "connecting", "cloud"),
    ]
    return [
        Device(id=id_, name=name, model=model, status=DeviceStatus(status), type=DeviceType(type_))
        for id_, name, model, status, type_ in rows
    ]


class MockDeviceProvider:
    """Serves a fixed device list."""

    def __init__(self, devices: Iterable[Device]) -> None:
        """Initialize provider.

        Args:
            devices: Devices of every type.
        """
        self._devices = list(devices)

    async def list_devices(self, device_type: DeviceType) -> list[Device]:
        """List devices of one type."""
        return [device for device in self._devices if device.type == device_type]


class LiveDeviceProvider:
    """Lists devices from an HTTP device registry.

    The registry answers ``GET /devices?type=<type>`` with
    ``{"devices": [...]}``.
    """

    def __init__(self, base_url: str, timeout: float = 5.0) -> None:
        """Initialize provider.

        Args:
            base_url: Registry base URL.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def list_devices(self, device_type: DeviceType) -> list[Device]:
        """List devices of one type.

        Raises:
            DeviceProviderError: If the registry is unreachable or answers badly.
        """
        try:
            client = await self._get_client()
            response = await client.get("/devices", params={"type": device_type.value})
        except httpx.RequestError as e:
            logger.error("Device registry request failed", device_type=device_type.value, error=str(e))
            raise DeviceProviderError(device_type.value, f"Request failed: {e}") from e

        if response.status_code != 200:
            raise DeviceProviderError(
                device_type.value, f"Registry returned HTTP {response.status_code}"
            )

        try:
            rows = response.json().get("devices", [])
            devices = [Device.from_api_response(row) for row in rows]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DeviceProviderError(device_type.value, f"Malformed registry response: {e}") from e

        return [device for device in devices if device.type == device_type]


def get_device_provider() -> DeviceProvider:
    """Build the provider selected by configuration.

    Returns:
        MockDeviceProvider or LiveDeviceProvider.
    """
    if settings.device_provider == "live":
        return LiveDeviceProvider(
            settings.device_registry_url,
            timeout=settings.device_request_timeout_seconds,
        )
    return MockDeviceProvider(default_mock_devices())
