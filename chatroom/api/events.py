from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..exceptions import ConflictingWaiterError, UnknownParticipantError
from ..services.chat import ChatService
from .channels import event_payload
from .deps import get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["events"])


class EventsResponse(BaseModel):
    events: list[dict[str, Any]]


@router.get("/users/{nick}/events", response_model=EventsResponse)
async def poll_events(
    nick: str,
    chat: ChatService = Depends(get_chat_service),
) -> EventsResponse:
    """Long-poll for the next batch of events addressed to *nick*."""
    try:
        events = await chat.poll(nick)
    except UnknownParticipantError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConflictingWaiterError as exc:
        logger.warning(exc.with_trace())
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return EventsResponse(events=[event_payload(event) for event in events])


__all__ = ["router"]
