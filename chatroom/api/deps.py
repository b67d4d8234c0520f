from __future__ import annotations

from fastapi.requests import HTTPConnection

from ..services.chat import ChatService


def get_chat_service(connection: HTTPConnection) -> ChatService:
    return connection.app.state.chat
