"""
Characters API endpoints.
"""

from fastapi import APIRouter, HTTPException, Response, status

from homechat.api.deps import CharacterRepo, CurrentSession
from homechat.models.character import Character, CharacterCreate, CharacterMove, CharacterUpdate

router = APIRouter()


@router.get("", response_model=list[Character])
async def list_characters(_session: CurrentSession, repo: CharacterRepo):
    """List characters with their group."""
    return await repo.list()


@router.post("", response_model=Character, status_code=status.HTTP_201_CREATED)
async def create_character(data: CharacterCreate, _session: CurrentSession, repo: CharacterRepo):
    return await repo.create(data)


# Declared before /{character_id} so "move" is not parsed as an id
@router.put("/move", response_model=Character)
async def move_character(data: CharacterMove, _session: CurrentSession, repo: CharacterRepo):
    """Move a character into a group (or out of all groups) at a sort position."""
    return await repo.move(data.character_id, data.group_id, data.new_sort_order)


@router.get("/{character_id}", response_model=Character)
async def get_character(character_id: int, _session: CurrentSession, repo: CharacterRepo):
    character = await repo.get(character_id)
    if not character:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Character not found",
        )
    return character


@router.put("/{character_id}", response_model=Character)
async def update_character(
    character_id: int,
    data: CharacterUpdate,
    _session: CurrentSession,
    repo: CharacterRepo,
):
    return await repo.update(character_id, data)


@router.delete("/{character_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_character(character_id: int, _session: CurrentSession, repo: CharacterRepo):
    """Delete a character together with its sessions and their messages."""
    if not await repo.delete(character_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Character not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
