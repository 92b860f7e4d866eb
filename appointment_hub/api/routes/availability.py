"""Provider availability block endpoints."""

import datetime as dt
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from appointment_hub.api.dependencies import get_availability_service
from appointment_hub.scheduling.availability import AvailabilityService
from appointment_hub.scheduling.models import AvailabilityBlock, validate_hhmm

router = APIRouter(prefix="/providers")


class BlockCreate(BaseModel):
    date: dt.date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)


class BlockUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v) if v is not None else v


@router.get("/{provider_id}/availability", response_model=list[AvailabilityBlock])
async def list_blocks(
    provider_id: str,
    day: Optional[date] = Query(None, alias="date"),
    service: AvailabilityService = Depends(get_availability_service),
) -> list[AvailabilityBlock]:
    return await service.list(provider_id, day)


@router.post(
    "/{provider_id}/availability", response_model=AvailabilityBlock, status_code=201
)
async def create_block(
    provider_id: str,
    body: BlockCreate,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityBlock:
    """Publish a block; 422 when it overlaps another or the day is full."""
    return await service.create(provider_id, body.date, body.start_time, body.end_time)


@router.put("/{provider_id}/availability/{block_id}", response_model=AvailabilityBlock)
async def update_block(
    provider_id: str,
    block_id: str,
    body: BlockUpdate,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityBlock:
    """Edit a block; 409 once it holds a booking."""
    return await service.update(
        provider_id, block_id, day=body.date, start_time=body.start_time, end_time=body.end_time
    )


@router.delete("/{provider_id}/availability/{block_id}")
async def delete_block(
    provider_id: str,
    block_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> dict:
    await service.delete(provider_id, block_id)
    return {"success": True, "message": "Slot deleted"}
