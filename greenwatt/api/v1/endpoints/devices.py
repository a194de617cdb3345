from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from typing import List
import logging

from greenwatt.core.deps import domain_http_error, get_household
from greenwatt.core.exceptions import GreenWattError
from greenwatt.models.device import Device, DeviceSchedule
from greenwatt.models.usage import UsagePeriod
from greenwatt.schemas.devices import DeviceCreate, DeviceUpdate, UsageSeriesResponse
from greenwatt.services.household import Household

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[Device])
async def list_devices(household: Household = Depends(get_household)):
    """Get all devices in registry order"""
    return household.registry.devices()


@router.post("/", response_model=Device, status_code=status.HTTP_201_CREATED)
async def register_device(
    device_data: DeviceCreate,
    household: Household = Depends(get_household)
):
    """Register a new device"""
    try:
        device = await household.registry.register(
            device_data.to_device(household.registry.clock.now())
        )
        logger.info(f"Device {device.id} registered for user {household.user_id}")
        return device

    except GreenWattError as e:
        raise domain_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Device registration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to register device"
        )


@router.get("/favorites", response_model=List[Device])
async def list_favorites(household: Household = Depends(get_household)):
    """Get favorite devices"""
    return household.registry.favorites()


@router.get("/{device_id}", response_model=Device)
async def get_device(device_id: str, household: Household = Depends(get_household)):
    """Get a single device"""
    try:
        return household.registry.get(device_id)
    except GreenWattError as e:
        raise domain_http_error(e)


@router.put("/{device_id}", response_model=Device)
async def update_device(
    device_id: str,
    device_data: DeviceUpdate,
    household: Household = Depends(get_household)
):
    """Replace every field of a device"""
    try:
        return await household.registry.update(
            device_data.to_device(device_id, household.registry.clock.now())
        )

    except GreenWattError as e:
        raise domain_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Device update error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update device"
        )


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_device(device_id: str, household: Household = Depends(get_household)):
    """Delete a device"""
    try:
        await household.registry.remove(device_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    except GreenWattError as e:
        raise domain_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Device removal error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove device"
        )


@router.post("/{device_id}/toggle", response_model=Device)
async def toggle_device(device_id: str, household: Household = Depends(get_household)):
    """Switch a device on or off"""
    try:
        return await household.registry.toggle(device_id)

    except GreenWattError as e:
        raise domain_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Device toggle error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to toggle device"
        )


@router.put("/{device_id}/schedule", response_model=Device)
async def set_device_schedule(
    device_id: str,
    schedule: DeviceSchedule,
    household: Household = Depends(get_household)
):
    """Store the on/off schedule of a device"""
    try:
        return await household.registry.set_schedule(device_id, schedule)

    except GreenWattError as e:
        raise domain_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Device schedule error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to set device schedule"
        )


@router.delete("/{device_id}/schedule", response_model=Device)
async def clear_device_schedule(device_id: str, household: Household = Depends(get_household)):
    """Remove the schedule of a device"""
    try:
        return await household.registry.set_schedule(device_id, None)

    except GreenWattError as e:
        raise domain_http_error(e)


@router.get("/{device_id}/usage", response_model=UsageSeriesResponse)
async def get_device_usage(
    device_id: str,
    period: UsagePeriod = Query(UsagePeriod.DAY, description="Chart period"),
    household: Household = Depends(get_household)
):
    """Get the usage chart of a device"""
    try:
        device = household.registry.get(device_id)
        series = household.aggregator.usage_series(device, period)
        return UsageSeriesResponse(device_id=device_id, period=period, data_points=list(series))

    except GreenWattError as e:
        raise domain_http_error(e)
