"""
Item-related API routes.
"""
from datetime import datetime
from typing import List, Optional, Dict, Any
from fastapi import APIRouter, Path, Query

from gtdtree.dependencies.services import get_services
from gtdtree.models.item_models import (
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
from gtdtree.timeutil import to_epoch

router = APIRouter(prefix="/items", tags=["items"])


@router.post("", response_model=ItemResponse, status_code=201)
async def create_item(item: ItemCreate):
    """Create an item as the last child of its parent."""
    created = get_services().items.create_item(
        title=item.title,
        parent_id=item.parent_id,
        item_type=item.item_type,
        due_date=to_epoch(item.due_date),
        earliest_start_time=to_epoch(item.earliest_start_time),
        notes=item.notes,
    )
    return ItemResponse(**created)


@router.post("/inbox", response_model=ItemResponse, status_code=201)
async def add_to_inbox(capture: InboxCapture):
    """Quick-capture an item into the Inbox."""
    created = get_services().items.add_to_inbox(
        title=capture.title,
        item_type=capture.item_type,
        due_date=to_epoch(capture.due_date),
        notes=capture.notes,
    )
    return ItemResponse(**created)


@router.get("/roots", response_model=List[ItemResponse])
async def list_root_items():
    """List root items in order."""
    return [ItemResponse(**row) for row in get_services().items.get_root_items()]


@router.get("/tree")
async def get_node_tree(
    root_id: Optional[str] = Query(None, description="Subtree root; all roots when omitted"),
    max_depth: int = Query(10, ge=0, description="Levels to include below the top"),
) -> Dict[str, Any]:
    """Nested view of the hierarchy."""
    return get_services().items.get_node_tree(root_id=root_id, max_depth=max_depth)


@router.get("/available", response_model=List[ItemResponse])
async def get_available_tasks(
    parent_id: Optional[str] = Query(None),
    root_id: Optional[str] = Query(None),
    include_deferred: bool = Query(False),
    include_archive: bool = Query(False),
):
    """Incomplete tasks that can be worked on now."""
    rows = get_services().items.get_available_tasks(
        parent_id=parent_id,
        root_id=root_id,
        include_deferred=include_deferred,
        include_archive=include_archive,
    )
    return [ItemResponse(**row) for row in rows]


@router.get("/deferred", response_model=List[ItemResponse])
async def get_deferred_tasks(
    parent_id: Optional[str] = Query(None),
    include_archive: bool = Query(False),
):
    """Tasks whose earliest start time is still in the future."""
    rows = get_services().items.get_deferred_tasks(parent_id=parent_id, include_archive=include_archive)
    return [ItemResponse(**row) for row in rows]


@router.get("/overdue", response_model=List[ItemResponse])
async def get_overdue_items(include_completed: bool = Query(False)):
    rows = get_services().items.get_overdue_items(include_completed=include_completed)
    return [ItemResponse(**row) for row in rows]


@router.get("/due", response_model=List[ItemResponse])
async def get_due_between(
    start: datetime = Query(..., description="Range start (ISO 8601, inclusive)"),
    end: datetime = Query(..., description="Range end (ISO 8601, exclusive)"),
    include_completed: bool = Query(False),
):
    """Items due within a time range."""
    rows = get_services().items.get_due_between(
        to_epoch(start), to_epoch(end), include_completed=include_completed
    )
    return [ItemResponse(**row) for row in rows]


@router.get("/search", response_model=List[ItemResponse])
async def search_items(
    q: str = Query(..., min_length=1, description="Text to find in titles and notes"),
    root_id: Optional[str] = Query(None),
    include_completed: bool = Query(True),
    limit: int = Query(50, ge=1, le=500),
):
    rows = get_services().items.search_items(
        q, root_id=root_id, include_completed=include_completed, limit=limit
    )
    return [ItemResponse(**row) for row in rows]


@router.get("/oldest")
async def get_oldest_tasks(
    limit: int = Query(20, ge=1, le=500),
    root_id: Optional[str] = Query(None),
) -> List[Dict[str, Any]]:
    """Oldest incomplete tasks outside the reference folders."""
    return get_services().items.get_oldest_tasks(limit=limit, root_id=root_id)


@router.get("/completed", response_model=List[ItemResponse])
async def get_completed_tasks(
    since: Optional[datetime] = Query(None),
    root_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
):
    rows = get_services().items.get_completed_tasks(since=to_epoch(since), root_id=root_id, limit=limit)
    return [ItemResponse(**row) for row in rows]


@router.post("/complete")
async def complete_multiple_tasks(request: BulkCompleteRequest) -> Dict[str, Any]:
    """Complete several tasks; per-item outcomes are reported."""
    return get_services().items.complete_multiple_tasks(request.item_ids, completed=request.completed)


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: str = Path(..., min_length=1, description="Item ID")):
    """Get an item by ID."""
    return ItemResponse(**get_services().items.get_item(item_id))


@router.get("/{item_id}/children", response_model=List[ItemResponse])
async def get_children(item_id: str = Path(..., min_length=1, description="Parent item ID or 'root'")):
    return [ItemResponse(**row) for row in get_services().items.get_children(item_id)]


@router.post("/{item_id}/complete", response_model=ItemResponse)
async def complete_task(item_id: str, request: Optional[CompleteRequest] = None):
    """Mark a task completed (or not completed)."""
    completed = request.completed if request is not None else True
    return ItemResponse(**get_services().items.complete_task(item_id, completed=completed))


@router.put("/{item_id}/title", response_model=ItemResponse)
async def update_title(item_id: str, update: TitleUpdate):
    return ItemResponse(**get_services().items.update_title(item_id, update.title))


@router.put("/{item_id}/notes", response_model=ItemResponse)
async def update_notes(item_id: str, update: NotesUpdate):
    return ItemResponse(**get_services().items.update_notes(item_id, update.notes))


@router.put("/{item_id}/due-date", response_model=ItemResponse)
async def update_due_date(item_id: str, update: DateUpdate):
    return ItemResponse(**get_services().items.update_due_date(item_id, to_epoch(update.value)))


@router.put("/{item_id}/start-time", response_model=ItemResponse)
async def update_earliest_start_time(item_id: str, update: DateUpdate):
    return ItemResponse(**get_services().items.update_earliest_start_time(item_id, to_epoch(update.value)))


@router.put("/{item_id}/type", response_model=ItemResponse)
async def change_item_type(item_id: str, change: TypeChange):
    """Change an item's kind; leaving Task clears completion."""
    return ItemResponse(**get_services().items.change_item_type(item_id, change.item_type))
