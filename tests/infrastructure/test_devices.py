"""Tests for device providers."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tillpoint.domain.exceptions import DeviceProviderError
from tillpoint.infrastructure.devices import (
    Device,
    DeviceStatus,
    DeviceType,
    LiveDeviceProvider,
    MockDeviceProvider,
    default_mock_devices,
)


def make_response(status_code: int = 200, body: Any = None) -> MagicMock:
    """Create a mock registry response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {"devices": []}
    return response


class TestDevice:
    """Tests for Device parsing."""

    def test_from_api_response(self) -> None:
        """Registry rows parse into devices."""
        device = Device.from_api_response(
            {"id": 7, "name": "Receipt", "model": "TM-20", "status": "connected", "type": "printer"}
        )

        assert device.id == "7"
        assert device.status == DeviceStatus.CONNECTED
        assert device.to_dict()["type"] == "printer"

    def test_missing_status_is_disconnected(self) -> None:
        """Rows without a status count as disconnected."""
        device = Device.from_api_response({"id": "x", "name": "X", "type": "cloud"})

        assert device.status == DeviceStatus.DISCONNECTED


class TestMockDeviceProvider:
    """Tests for MockDeviceProvider."""

    @pytest.mark.asyncio
    async def test_filters_by_type(self) -> None:
        """Only devices of the requested type are listed."""
        provider = MockDeviceProvider(default_mock_devices())

        printers = await provider.list_devices(DeviceType.PRINTER)
        scanners = await provider.list_devices(DeviceType.SCANNER)
        clouds = await provider.list_devices(DeviceType.CLOUD)

        assert len(printers) == 4
        assert len(scanners) == 4
        assert len(clouds) == 3
        assert all(device.type == DeviceType.PRINTER for device in printers)


class TestLiveDeviceProvider:
    """Tests for LiveDeviceProvider."""

    @pytest.fixture
    def provider(self) -> LiveDeviceProvider:
        """Create a provider pointing at a fake registry."""
        return LiveDeviceProvider("http://registry.test", timeout=1.0)

    @pytest.mark.asyncio
    async def test_client_created_lazily(self, provider: LiveDeviceProvider) -> None:
        """No HTTP client exists before the first request."""
        assert provider._client is None

        client = await provider._get_client()

        assert provider._client is client
        await provider.close()
        await provider.close()
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_lists_devices(self, provider: LiveDeviceProvider) -> None:
        """The registry is queried by type and other types are filtered out."""
        response = make_response(
            body={
                "devices": [
                    {"id": "s1", "name": "Scanner", "status": "connected", "type": "scanner"},
                    {"id": "p1", "name": "Printer", "status": "connected", "type": "printer"},
                ]
            }
        )

        with patch.object(provider, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(return_value=response)
            mock_get_client.return_value = mock_http_client

            devices = await provider.list_devices(DeviceType.SCANNER)

            mock_http_client.get.assert_awaited_once_with("/devices", params={"type": "scanner"})

        assert [d.id for d in devices] == ["s1"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self, provider: LiveDeviceProvider) -> None:
        """Non-200 answers raise DeviceProviderError."""
        with patch.object(provider, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(return_value=make_response(status_code=503))
            mock_get_client.return_value = mock_http_client

            with pytest.raises(DeviceProviderError) as exc_info:
                await provider.list_devices(DeviceType.PRINTER)

        assert "503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_request_error_raises(self, provider: LiveDeviceProvider) -> None:
        """Transport failures raise DeviceProviderError."""
        with patch.object(provider, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(side_effect=httpx.RequestError("Connection failed"))
            mock_get_client.return_value = mock_http_client

            with pytest.raises(DeviceProviderError) as exc_info:
                await provider.list_devices(DeviceType.CLOUD)

        assert exc_info.value.details["device_type"] == "cloud"

    @pytest.mark.asyncio
    async def test_malformed_response_raises(self, provider: LiveDeviceProvider) -> None:
        """Rows without required fields raise DeviceProviderError."""
        with patch.object(provider, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(
                return_value=make_response(body={"devices": [{"name": "no id"}]})
            )
            mock_get_client.return_value = mock_http_client

            with pytest.raises(DeviceProviderError):
                await provider.list_devices(DeviceType.PRINTER)
