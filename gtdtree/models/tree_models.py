"""
Pydantic models for structural tree operations.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class MoveRequest(BaseModel):
    """Re-parent an item; null or 'root' makes it a root item."""
    parent_id: Optional[str] = Field(None, description="New parent item ID")


class PositionRequest(BaseModel):
    position: int = Field(..., description="Target index among siblings; clamped to the valid range")


class SwapRequest(BaseModel):
    first_id: str = Field(..., min_length=1)
    second_id: str = Field(..., min_length=1)


class ReorderRequest(BaseModel):
    """Full ordering of a parent's children."""
    ordered_ids: List[str] = Field(..., description="Every live child ID exactly once, in the new order")


class InstantiateTemplateRequest(BaseModel):
    """Request model for copying a template subtree."""
    parent_id: Optional[str] = Field(None, description="Destination parent; Inbox when omitted")
    title: Optional[str] = Field(None, description="Title of the new root; template title when omitted")
    as_type: Optional[str] = Field(None, description="Kind of the new root; Project when omitted")

    @field_validator('title', 'as_type')
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip() if v is not None else v


class EmptyTrashRequest(BaseModel):
    keep_items_since: Optional[datetime] = Field(
        None, description="Keep trashed items modified at or after this time (ISO 8601)"
    )
