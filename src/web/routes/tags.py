"""Tag vocabulary routes (person and event tags)."""

from fastapi import APIRouter, Depends, HTTPException, status

from contacts import TagStore
from shared_types import TagKind
from web.deps import get_owner_id, get_tag_store
from web.models import TagCreate

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("/{kind}", response_model=list[str])
async def list_tags(
    kind: TagKind,
    owner_id: str = Depends(get_owner_id),
    store: TagStore = Depends(get_tag_store),
):
    return await store.list_tags(owner_id, kind)


@router.post("/{kind}", status_code=status.HTTP_201_CREATED)
async def add_tag(
    kind: TagKind,
    body: TagCreate,
    owner_id: str = Depends(get_owner_id),
    store: TagStore = Depends(get_tag_store),
):
    try:
        created = await store.add(owner_id, kind, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"name": body.name.strip(), "created": created}


@router.delete("/{kind}/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_tag(
    kind: TagKind,
    name: str,
    owner_id: str = Depends(get_owner_id),
    store: TagStore = Depends(get_tag_store),
):
    if not await store.remove(owner_id, kind, name):
        raise HTTPException(status_code=404, detail="Tag not found")
