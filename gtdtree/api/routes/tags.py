"""
Tag-related API routes.
"""
from typing import List, Dict, Any
from fastapi import APIRouter, HTTPException, Path

from gtdtree.dependencies.services import get_services
from gtdtree.models.tag_models import TagCreate, TagRename, TagResponse, ItemsByTagsRequest

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=List[TagResponse])
async def list_tags():
    """List all tags."""
    return [TagResponse(**tag) for tag in get_services().tags.list_tags()]


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(tag: TagCreate):
    """Create a new tag."""
    return TagResponse(**get_services().tags.create_tag(tag.name, tag.color))


@router.post("/items/query")
async def get_items_by_tags(request: ItemsByTagsRequest) -> Dict[str, Any]:
    """Items carrying every one of the given tags."""
    tags = get_services().tags
    if request.tag_names:
        return tags.get_items_by_tag_names(
            request.tag_names,
            include_completed=request.include_completed,
            include_archive=request.include_archive,
        )
    if request.tag_ids:
        return tags.get_items_by_tag_ids(
            request.tag_ids,
            include_completed=request.include_completed,
            include_archive=request.include_archive,
        )
    raise HTTPException(status_code=400, detail="Provide tag_names or tag_ids")


@router.get("/items/{item_id}", response_model=List[TagResponse])
async def get_item_tags(item_id: str = Path(..., min_length=1, description="Item ID")):
    """Tags attached to an item."""
    return [TagResponse(**tag) for tag in get_services().tags.get_item_tags(item_id)]


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(tag_id: str = Path(..., min_length=1, description="Tag ID")):
    """Get a tag by ID."""
    tag = get_services().tags.get_tag(tag_id)
    if not tag:
        raise HTTPException(
            status_code=404,
            detail=f"Tag {tag_id} not found. Please verify the tag_id is correct."
        )
    return TagResponse(**tag)


@router.put("/{tag_id}", response_model=TagResponse)
async def rename_tag(tag_id: str, rename: TagRename):
    return TagResponse(**get_services().tags.rename_tag(tag_id, rename.name))


@router.delete("/{tag_id}")
async def delete_tag(tag_id: str) -> Dict[str, Any]:
    """Delete a tag and detach it from every item."""
    result = get_services().tags.delete_tag(tag_id)
    return {"deleted": True, "tag_id": tag_id, "detached_items": result["detached_items"]}


@router.post("/{tag_id}/items/{item_id}")
async def add_tag_to_item(tag_id: str, item_id: str) -> Dict[str, Any]:
    """Attach a tag to an item."""
    result = get_services().tags.add_tag_to_item(item_id, tag_id)
    return {"item_id": item_id, "tag_id": tag_id, "added": result["added"]}


@router.delete("/{tag_id}/items/{item_id}")
async def remove_tag_from_item(tag_id: str, item_id: str) -> Dict[str, Any]:
    """Detach a tag from an item."""
    result = get_services().tags.remove_tag_from_item(item_id, tag_id)
    return {"item_id": item_id, "tag_id": tag_id, "removed": result["removed"]}
