import logging
from typing import List

import anyio
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from .. import schemas
from ..errors import CarServiceError
from ..repositories import AuthRepository, ChatRepository
from .deps import get_auth_repository, get_chat_repository, get_current_user, resolve_user, unwrap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post("/{request_id}/messages", response_model=schemas.ChatMessage, status_code=201)
async def send_message(
    request_id: str,
    req: schemas.MessageCreate,
    user: schemas.User = Depends(get_current_user),
    repo: ChatRepository = Depends(get_chat_repository),
):
    if not req.content.strip():
        raise HTTPException(status_code=422, detail="Message is empty")
    message = schemas.ChatMessage(
        service_request_id=request_id,
        sender_id=user.id,
        sender_name=user.name,
        sender_role=user.role,
        content=req.content,
    )
    return unwrap(await repo.send(message))


@router.get("/{request_id}/messages", response_model=List[schemas.ChatMessage])
async def list_messages(
    request_id: str,
    user: schemas.User = Depends(get_current_user),
    repo: ChatRepository = Depends(get_chat_repository),
):
    return await repo.messages(request_id)


@router.post("/{request_id}/read")
async def mark_read(
    request_id: str,
    user: schemas.User = Depends(get_current_user),
    repo: ChatRepository = Depends(get_chat_repository),
):
    changed = unwrap(await repo.mark_read(request_id, user.id))
    return {"detail": "Messages marked as read", "updated": changed}


@router.get("/{request_id}/unread", response_model=schemas.UnreadCount)
async def unread(
    request_id: str,
    user: schemas.User = Depends(get_current_user),
    repo: ChatRepository = Depends(get_chat_repository),
):
    count = await repo.count_unread(request_id, user.id)
    return schemas.UnreadCount(service_request_id=request_id, count=count)


@router.websocket("/{request_id}/ws")
async def watch_thread(
    websocket: WebSocket,
    request_id: str,
    token: str,
    auth: AuthRepository = Depends(get_auth_repository),
    repo: ChatRepository = Depends(get_chat_repository),
):
    """Push the whole thread to the client on every change."""
    try:
        await resolve_user(token, auth)
    except HTTPException:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    async with anyio.create_task_group() as tg:
        tg.start_soon(_push_thread, websocket, repo, request_id, tg.cancel_scope)
        await _wait_for_disconnect(websocket)
        tg.cancel_scope.cancel()
    logger.debug("Chat watcher for %s disconnected", request_id)


async def _push_thread(websocket: WebSocket, repo: ChatRepository, request_id: str, scope) -> None:
    try:
        async with repo.watch(request_id) as snapshots:
            async for messages in snapshots:
                await websocket.send_json([m.model_dump(mode="json") for m in messages])
    except WebSocketDisconnect:
        logger.debug("Chat watcher for %s went away mid-send", request_id)
    except CarServiceError as e:
        logger.warning("Chat watch for %s closed: %s", request_id, e)
        await websocket.close(code=1011)
    scope.cancel()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
