"""
Character groups API endpoints.
"""

from fastapi import APIRouter, HTTPException, Response, status

from homechat.api.deps import CharacterGroupRepo, CurrentSession
from homechat.models.character import CharacterGroup, CharacterGroupCreate, CharacterGroupUpdate

router = APIRouter()


@router.get("", response_model=list[CharacterGroup])
async def list_groups(_session: CurrentSession, repo: CharacterGroupRepo):
    """Groups ordered by sort order, each with its characters."""
    return await repo.list()


@router.post("", response_model=CharacterGroup, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: CharacterGroupCreate,
    _session: CurrentSession,
    repo: CharacterGroupRepo,
):
    return await repo.create(data)


@router.get("/{group_id}", response_model=CharacterGroup)
async def get_group(group_id: int, _session: CurrentSession, repo: CharacterGroupRepo):
    group = await repo.get(group_id)
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found",
        )
    return group


@router.put("/{group_id}", response_model=CharacterGroup)
async def update_group(
    group_id: int,
    data: CharacterGroupUpdate,
    _session: CurrentSession,
    repo: CharacterGroupRepo,
):
    return await repo.update(group_id, data)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: int, _session: CurrentSession, repo: CharacterGroupRepo):
    """Delete a group; its characters become ungrouped."""
    if not await repo.delete(group_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
