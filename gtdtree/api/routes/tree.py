"""
Structural tree API routes: ordering, relocation, templates and stuck projects.
"""
from typing import Optional, Dict, Any, List
from fastapi import APIRouter, Path, Query

from gtdtree.dependencies.services import get_services
from gtdtree.models.item_models import ItemResponse
from gtdtree.models.tree_models import (
    MoveRequest,
    PositionRequest,
    SwapRequest,
    ReorderRequest,
    InstantiateTemplateRequest,
    EmptyTrashRequest,
)
from gtdtree.timeutil import to_epoch

router = APIRouter(prefix="/tree", tags=["tree"])


@router.post("/items/{item_id}/move", response_model=ItemResponse)
async def move_item(item_id: str, request: MoveRequest):
    """Re-parent an item; it is appended after the new parent's last child."""
    return ItemResponse(**get_services().tree.move_item(item_id, request.parent_id))


@router.post("/items/{item_id}/position")
async def move_to_position(item_id: str, request: PositionRequest) -> Dict[str, Any]:
    """Place an item at a position among its siblings."""
    result = get_services().tree.move_to_position(item_id, request.position)
    result["item"] = ItemResponse(**result["item"]).model_dump()
    return result


@router.post("/swap")
async def swap_items(request: SwapRequest) -> Dict[str, Any]:
    """Swap the positions of two siblings."""
    return get_services().tree.swap_items(request.first_id, request.second_id)


@router.put("/children/{parent_id}/order")
async def reorder_children(
    request: ReorderRequest,
    parent_id: str = Path(..., min_length=1, description="Parent item ID or 'root'"),
) -> Dict[str, Any]:
    """Set the order of every child of a parent."""
    return get_services().tree.reorder_children(parent_id, request.ordered_ids)


@router.delete("/items/{item_id}", response_model=ItemResponse)
async def delete_item(item_id: str):
    """Move an item and its subtree to the Trash."""
    return ItemResponse(**get_services().tree.delete_item(item_id))


@router.post("/items/{item_id}/archive")
async def archive_item(item_id: str) -> Dict[str, Any]:
    """Move an item to the Archive; already archived items are left alone."""
    result = get_services().tree.archive_item(item_id)
    result["item"] = ItemResponse(**result["item"]).model_dump()
    return result


@router.post("/trash/empty")
async def empty_trash(request: Optional[EmptyTrashRequest] = None) -> Dict[str, Any]:
    """Permanently remove items from the Trash, optionally keeping recent ones."""
    cutoff = to_epoch(request.keep_items_since) if request is not None else None
    return get_services().tree.empty_trash(cutoff)


@router.post("/templates/{template_id}/instantiate", status_code=201)
async def instantiate_template(template_id: str, request: Optional[InstantiateTemplateRequest] = None) -> Dict[str, Any]:
    """Copy a template subtree into a new project."""
    request = request or InstantiateTemplateRequest()
    result = get_services().tree.instantiate_template(
        template_id,
        parent_id=request.parent_id,
        title=request.title,
        as_type=request.as_type,
    )
    result["item"] = ItemResponse(**result["item"]).model_dump()
    return result


@router.get("/stuck-projects")
async def get_stuck_projects(root_id: Optional[str] = Query(None, description="Limit to folders under this item")) -> Dict[str, Any]:
    """Projects without anything tagged as the next action."""
    return get_services().tree.get_stuck_projects(root_id)


@router.get("/items/{item_id}/descendants")
async def get_descendants(
    item_id: str,
    max_depth: Optional[int] = Query(None, ge=1, description="Levels to descend; unbounded when omitted"),
) -> Dict[str, Any]:
    ids: List[str] = get_services().tree.get_descendants(item_id, max_depth)
    return {"item_id": item_id, "descendant_ids": ids, "count": len(ids)}
