from __future__ import annotations

import asyncio
import contextlib
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..exceptions import UnknownParticipantError
from ..services.chat import ChatService
from .channels import WebSocketChannel
from .deps import get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])

UNKNOWN_PARTICIPANT_CLOSE_CODE = 4404


def _reply_error(channel: WebSocketChannel, detail: str) -> None:
    if not channel.closed:
        channel.push({"type": "error", "detail": detail})


@router.websocket("/ws/{nick}")
async def push_channel(
    websocket: WebSocket,
    nick: str,
    chat: ChatService = Depends(get_chat_service),
) -> None:
    await websocket.accept()
    participant = chat.registry.get(nick)
    if participant is None:
        await websocket.close(code=UNKNOWN_PARTICIPANT_CLOSE_CODE)
        return

    channel = WebSocketChannel(websocket)
    # A second socket for the same nick takes over; the stale one is closed.
    participant.detach()
    participant.attach(channel)
    for event in participant.drain():
        channel.push(event)
    logger.info("%s attached a push channel", nick)

    writer = asyncio.create_task(channel.run_writer())
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                _reply_error(channel, "invalid JSON")
                continue
            text = data.get("text") if isinstance(data, dict) else None
            if not isinstance(text, str):
                _reply_error(channel, "expected {\"text\": ...}")
                continue
            try:
                chat.post(nick, text)
            except ValidationError:
                _reply_error(channel, "text must not be blank")
            except UnknownParticipantError:
                break
    except WebSocketDisconnect:
        pass
    finally:
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        if participant.channel is channel:
            participant.detach()
        logger.info("%s detached its push channel", nick)


__all__ = ["router", "UNKNOWN_PARTICIPANT_CLOSE_CODE"]
