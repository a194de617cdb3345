from fastapi import APIRouter, Depends
from typing import List
import logging

from greenwatt.core.deps import get_household
from greenwatt.models.usage import AggregateSnapshot, RoomBreakdown
from greenwatt.schemas.dashboard import SampleSeriesResponse
from greenwatt.services.household import Household

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/snapshot", response_model=AggregateSnapshot)
async def get_snapshot(household: Household = Depends(get_household)):
    """Latest aggregates with their trends"""
    return household.aggregator.snapshot


@router.get("/samples", response_model=SampleSeriesResponse)
async def get_samples(household: Household = Depends(get_household)):
    """Rolling usage series, oldest first"""
    return SampleSeriesResponse(
        capacity=household.aggregator.buffer_size,
        data_points=household.aggregator.samples()
    )


@router.get("/rooms", response_model=List[RoomBreakdown])
async def get_room_breakdown(household: Household = Depends(get_household)):
    """Today's usage split by room"""
    return household.registry.room_breakdown(household.aggregator.rate)
