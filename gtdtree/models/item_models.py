"""
Pydantic models for item-related requests and responses.

Timestamps arrive as ISO-8601 datetimes and are stored as epoch seconds;
responses carry the stored epoch values.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator


class ItemCreate(BaseModel):
    """Request model for creating an item under a parent (or at the root)."""
    title: str = Field(..., description="Item title", min_length=1)
    parent_id: Optional[str] = Field(None, description="Parent item ID; omit or 'root' for a root item")
    item_type: Optional[str] = Field(None, description="Item kind (Task, Note, Project, Folder, ...)")
    due_date: Optional[datetime] = Field(None, description="Due date (ISO 8601)")
    earliest_start_time: Optional[datetime] = Field(None, description="Do not surface before this time (ISO 8601)")
    notes: Optional[str] = Field(None, description="Free-form notes")

    @field_validator('title')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        """Validate that the title is not empty or only whitespace."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip()


class InboxCapture(BaseModel):
    """Request model for quick capture into the Inbox."""
    title: str = Field(..., description="Item title", min_length=1)
    item_type: Optional[str] = Field(None, description="Item kind, Task when omitted")
    due_date: Optional[datetime] = Field(None, description="Due date (ISO 8601)")
    notes: Optional[str] = Field(None, description="Free-form notes")

    @field_validator('title')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip()


class TitleUpdate(BaseModel):
    title: str = Field(..., min_length=1)

    @field_validator('title')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip()


class NotesUpdate(BaseModel):
    notes: Optional[str] = Field(None, description="New notes; null clears them")


class DateUpdate(BaseModel):
    """Request model for setting or clearing a date field."""
    value: Optional[datetime] = Field(None, description="New value (ISO 8601); null clears it")


class TypeChange(BaseModel):
    item_type: str = Field(..., min_length=1, description="New item kind")

    @field_validator('item_type')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip()


class CompleteRequest(BaseModel):
    completed: bool = Field(True, description="False marks the task not completed")


class BulkCompleteRequest(BaseModel):
    """Request model for completing several tasks at once."""
    item_ids: List[str] = Field(..., min_length=1, description="Task IDs")
    completed: bool = Field(True)


class ItemResponse(BaseModel):
    """Item response model (timestamps in epoch seconds)."""
    id: str
    title: str
    parent_id: Optional[str]
    sort_order: int
    item_type: str
    created_at: int
    modified_at: int
    completed_at: Optional[int] = None
    due_date: Optional[int] = None
    earliest_start_time: Optional[int] = None
    notes: Optional[str] = None
    needs_push: bool = True
    tags: Optional[List[Dict[str, Any]]] = None
