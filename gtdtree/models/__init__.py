"""
Pydantic models for request/response validation.
"""
from .item_models import (
    ItemCreate,
    InboxCapture,
    TitleUpdate,
    NotesUpdate,
    DateUpdate,
    TypeChange,
    CompleteRequest,
    BulkCompleteRequest,
    ItemResponse,
)
from .tree_models import (
    MoveRequest,
    PositionRequest,
    SwapRequest,
    ReorderRequest,
    InstantiateTemplateRequest,
    EmptyTrashRequest,
)
from .tag_models import TagCreate, TagRename, TagResponse, ItemsByTagsRequest
from .time_models import StopTimerRequest, TimeUpdate, TimeEntryResponse

__all__ = [
    "ItemCreate",
    "InboxCapture",
    "TitleUpdate",
    "NotesUpdate",
    "DateUpdate",
    "TypeChange",
    "CompleteRequest",
    "BulkCompleteRequest",
    "ItemResponse",
    "MoveRequest",
    "PositionRequest",
    "SwapRequest",
    "ReorderRequest",
    "InstantiateTemplateRequest",
    "EmptyTrashRequest",
    "TagCreate",
    "TagRename",
    "TagResponse",
    "ItemsByTagsRequest",
    "StopTimerRequest",
    "TimeUpdate",
    "TimeEntryResponse",
]
