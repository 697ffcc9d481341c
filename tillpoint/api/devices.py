"""Device API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tillpoint.api.dependencies import Till, get_till
from tillpoint.api.schemas import DeviceSchema, DevicesResponse, ErrorResponse
from tillpoint.infrastructure.devices import DeviceType

router = APIRouter(prefix="/devices", tags=["Devices"])


@router.get(
    "/{device_type}",
    response_model=DevicesResponse,
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="List devices",
)
async def list_devices(
    device_type: str,
    till: Annotated[Till, Depends(get_till)],
) -> DevicesResponse:
    """List printers, scanners or cloud sync targets.

    Raises:
        HTTPException: If the device type is unknown.
    """
    try:
        kind = DeviceType(device_type)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error_code": "UNKNOWN_DEVICE_TYPE",
                "message": f"Unknown device type: {device_type}",
                "details": {"allowed": [t.value for t in DeviceType]},
            },
        )

    devices = await till.devices.list_devices(kind)
    return DevicesResponse(
        device_type=kind.value,
        devices=[DeviceSchema.from_domain(d) for d in devices],
    )
