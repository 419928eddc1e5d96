"""
Pydantic models for time tracking.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class StopTimerRequest(BaseModel):
    entry_id: Optional[str] = Field(None, description="Entry to stop")
    item_id: Optional[str] = Field(None, description="Stop the latest running entry of this item")


class TimeUpdate(BaseModel):
    value: datetime = Field(..., description="New timestamp (ISO 8601)")


class TimeEntryResponse(BaseModel):
    id: str
    item_id: str
    started_at: int
    ended_at: Optional[int] = None
    duration: Optional[int] = None
    needs_push: bool = True
