"""
Pydantic models for tag-related requests and responses.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class TagCreate(BaseModel):
    """Request model for creating a tag."""
    name: str = Field(..., description="Tag name (unique, case-insensitive)", min_length=1)
    color: Optional[str] = Field(None, description="Display color")

    @field_validator('name')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip()


class TagRename(BaseModel):
    name: str = Field(..., min_length=1)

    @field_validator('name')
    @classmethod
    def validate_not_empty_or_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or contain only whitespace")
        return v.strip()


class TagResponse(BaseModel):
    id: str
    name: str
    color: Optional[str] = None
    needs_push: bool = True


class ItemsByTagsRequest(BaseModel):
    """Items carrying every listed tag."""
    tag_names: Optional[List[str]] = Field(None, description="Tag names (case-insensitive)")
    tag_ids: Optional[List[str]] = Field(None, description="Tag IDs")
    include_completed: bool = False
    include_archive: bool = False
