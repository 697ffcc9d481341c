"""Tests for device endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tillpoint.api.dependencies import Till
from tillpoint.domain.exceptions import DeviceProviderError


class TestListDevices:
    """Tests for GET /devices/{device_type}."""

    @pytest.mark.parametrize(("device_type", "count"), [("printer", 4), ("scanner", 4), ("cloud", 3)])
    def test_lists_devices_by_type(self, client: TestClient, device_type: str, count: int) -> None:
        """Each type lists only its own devices."""
        response = client.get(f"/devices/{device_type}")

        assert response.status_code == 200
        data = response.json()
        assert data["device_type"] == device_type
        assert len(data["devices"]) == count
        assert {d["type"] for d in data["devices"]} == {device_type}

    def test_unknown_type_is_404(self, client: TestClient) -> None:
        """Unknown device types are rejected."""
        response = client.get("/devices/toaster")

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "UNKNOWN_DEVICE_TYPE"
        assert "printer" in data["details"]["allowed"]

    def test_provider_failure_is_502(self, client: TestClient, till: Till) -> None:
        """Registry failures surface as bad gateway."""
        till.devices = AsyncMock()
        till.devices.list_devices.side_effect = DeviceProviderError("printer", "timeout")

        response = client.get("/devices/printer")

        assert response.status_code == 502
        assert response.json()["error_code"] == "DEVICE_PROVIDER"
