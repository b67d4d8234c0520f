from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from ..exceptions import NickTakenError, UnknownParticipantError
from ..services.chat import ChatService
from .channels import event_payload
from .deps import get_chat_service

router = APIRouter(prefix="/api", tags=["users"])


class JoinRequest(BaseModel):
    nick: str


class UserResponse(BaseModel):
    nick: str


class UsersResponse(BaseModel):
    users: list[UserResponse]


class PostMessageRequest(BaseModel):
    text: str


class LeaveRequest(BaseModel):
    reason: Optional[str] = None


@router.post("/users", response_model=UserResponse, status_code=201)
async def join(
    payload: JoinRequest,
    chat: ChatService = Depends(get_chat_service),
) -> UserResponse:
    try:
        participant = chat.join(payload.nick)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NickTakenError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return UserResponse(**participant.serialize())


@router.get("/users", response_model=UsersResponse)
async def list_users(chat: ChatService = Depends(get_chat_service)) -> UsersResponse:
    return UsersResponse(users=chat.registry.serialize())


@router.get("/users/present", response_model=UsersResponse)
async def list_present_users(chat: ChatService = Depends(get_chat_service)) -> UsersResponse:
    registry = chat.registry
    return UsersResponse(users=registry.serialize(registry.present()))


@router.delete("/users/{nick}")
async def leave(
    nick: str,
    payload: Optional[LeaveRequest] = None,
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    try:
        chat.leave(nick, reason=payload.reason if payload else None)
    except UnknownParticipantError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True, "nick": nick}


@router.post("/users/{nick}/messages", status_code=201)
async def post_message(
    nick: str,
    payload: PostMessageRequest,
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    try:
        event = chat.post(nick, payload.text)
    except UnknownParticipantError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail="text must not be blank") from exc
    return event_payload(event)


__all__ = ["router"]
