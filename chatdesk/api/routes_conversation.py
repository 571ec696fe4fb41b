import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..conversation import Conversation, ConversationRepository
from ..errors import InvalidFilenameError, NotFoundError, StorageError
from .deps import get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


class SaveConversationRequest(BaseModel):
    content: Conversation


def _http_error(e: StorageError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail="Conversation not found")
    if isinstance(e, InvalidFilenameError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error("Conversation storage failure: %s", e)
    return HTTPException(status_code=500, detail=str(e))


# Declared before "/{filename}" so "index" is not taken for a filename.
@router.get("/index")
async def get_index(repo: ConversationRepository = Depends(get_repository)):
    try:
        return repo.list_filenames()
    except StorageError as e:
        raise _http_error(e)


@router.get("/{filename}")
async def get_conversation(
    filename: str, repo: ConversationRepository = Depends(get_repository)
):
    try:
        conv = repo.get(filename)
    except StorageError as e:
        raise _http_error(e)
    return {"content": conv.to_json()}


@router.post("/{filename}")
@router.put("/{filename}")
async def save_conversation(
    filename: str,
    req: SaveConversationRequest,
    repo: ConversationRepository = Depends(get_repository),
):
    try:
        repo.save(filename, req.content)
    except StorageError as e:
        raise _http_error(e)
    return {"success": True}


@router.delete("/{filename}")
async def delete_conversation(
    filename: str, repo: ConversationRepository = Depends(get_repository)
):
    try:
        repo.delete(filename)
    except StorageError as e:
        raise _http_error(e)
    return {"success": True}


@router.delete("")
async def clear_conversations(repo: ConversationRepository = Depends(get_repository)):
    try:
        count = repo.clear_all()
    except StorageError as e:
        raise _http_error(e)
    return {"success": True, "count": count}
