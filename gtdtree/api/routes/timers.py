"""
Time tracking API routes.
"""
from typing import List, Dict, Any
from fastapi import APIRouter

from gtdtree.dependencies.services import get_services
from gtdtree.models.time_models import StopTimerRequest, TimeUpdate, TimeEntryResponse
from gtdtree.timeutil import to_epoch

router = APIRouter(prefix="/timers", tags=["timers"])


@router.post("/items/{item_id}/start", response_model=TimeEntryResponse, status_code=201)
async def start_timer(item_id: str):
    """Start a timer for an item."""
    return TimeEntryResponse(**get_services().timers.start_timer(item_id))


@router.post("/stop", response_model=TimeEntryResponse)
async def stop_timer(request: StopTimerRequest):
    """Stop a timer by entry, or the latest running timer of an item."""
    return TimeEntryResponse(**get_services().timers.stop_timer(entry_id=request.entry_id, item_id=request.item_id))


@router.get("/active")
async def get_active_timers() -> List[Dict[str, Any]]:
    return get_services().timers.get_active_timers()


@router.get("/items/{item_id}", response_model=List[TimeEntryResponse])
async def get_time_entries(item_id: str):
    return [TimeEntryResponse(**entry) for entry in get_services().timers.get_time_entries(item_id)]


@router.get("/items/{item_id}/total")
async def get_total_time(item_id: str) -> Dict[str, Any]:
    """Total tracked seconds for an item, including running timers."""
    return get_services().timers.get_total_time(item_id)


@router.put("/{entry_id}/start", response_model=TimeEntryResponse)
async def update_start_time(entry_id: str, update: TimeUpdate):
    return TimeEntryResponse(**get_services().timers.update_start_time(entry_id, to_epoch(update.value)))


@router.put("/{entry_id}/end", response_model=TimeEntryResponse)
async def update_end_time(entry_id: str, update: TimeUpdate):
    return TimeEntryResponse(**get_services().timers.update_end_time(entry_id, to_epoch(update.value)))
