"""
Personas API endpoints.
"""

from fastapi import APIRouter, HTTPException, Response, status

from homechat.api.deps import CurrentSession, PersonaRepo
from homechat.models.persona import Persona, PersonaCreate, PersonaUpdate

router = APIRouter()


@router.get("", response_model=list[Persona])
async def list_personas(_session: CurrentSession, repo: PersonaRepo):
    return await repo.list()


@router.post("", response_model=Persona, status_code=status.HTTP_201_CREATED)
async def create_persona(data: PersonaCreate, _session: CurrentSession, repo: PersonaRepo):
    """Create a persona. (name, profileName) must be unique."""
    return await repo.create(data)


@router.put("/{persona_id}", response_model=Persona)
async def update_persona(
    persona_id: int,
    data: PersonaUpdate,
    _session: CurrentSession,
    repo: PersonaRepo,
):
    return await repo.update(persona_id, data)


@router.delete("/{persona_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_persona(persona_id: int, _session: CurrentSession, repo: PersonaRepo):
    """Delete a persona together with its sessions and their messages."""
    if not await repo.delete(persona_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Persona not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
