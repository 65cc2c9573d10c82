"""
User prompts API endpoints.

User prompts are reusable blocks appended to the system prompt.
"""

from fastapi import APIRouter, HTTPException, Response, status

from homechat.api.deps import CurrentSession, UserPromptRepo
from homechat.models.user_prompt import UserPrompt, UserPromptCreate, UserPromptUpdate

router = APIRouter()


@router.get("", response_model=list[UserPrompt])
async def list_user_prompts(_session: CurrentSession, repo: UserPromptRepo):
    return await repo.list()


@router.post("", response_model=UserPrompt, status_code=status.HTTP_201_CREATED)
async def create_user_prompt(
    data: UserPromptCreate,
    _session: CurrentSession,
    repo: UserPromptRepo,
):
    return await repo.create(data)


@router.put("/{prompt_id}", response_model=UserPrompt)
async def update_user_prompt(
    prompt_id: int,
    data: UserPromptUpdate,
    _session: CurrentSession,
    repo: UserPromptRepo,
):
    return await repo.update(prompt_id, data)


@router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_prompt(prompt_id: int, _session: CurrentSession, repo: UserPromptRepo):
    if not await repo.delete(prompt_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Prompt not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
