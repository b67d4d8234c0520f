from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import events_router, users_router, ws_router
from .config import Settings, get_settings
from .services.chat import ChatService
from .services.participants import ParticipantRegistry, Scheduler, WaiterPolicy

logger = logging.getLogger(__name__)


def _resolve_policy(value: str) -> WaiterPolicy:
    try:
        return WaiterPolicy(value)
    except ValueError:
        logger.warning("Unknown WAITER_CONFLICT_POLICY %r; using 'replace'", value)
        return WaiterPolicy.REPLACE


def build_registry(settings: Settings, *, scheduler: Optional[Scheduler] = None) -> ParticipantRegistry:
    return ParticipantRegistry(
        timeout=settings.long_polling_timeout_seconds,
        scheduler=scheduler,
        policy=_resolve_policy(settings.waiter_conflict_policy),
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    try:
        yield
    finally:
        registry: ParticipantRegistry = app.state.registry
        registry.for_each(lambda participant: participant.cancel_waiter())
        registry.for_each(lambda participant: participant.detach())
        logger.info("Shut down with %d participants", len(registry))


def create_app(settings: Settings | None = None, *, scheduler: Optional[Scheduler] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Chatroom API", lifespan=_lifespan)

    allow_origins = settings.cors_allow_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = build_registry(settings, scheduler=scheduler)
    app.state.registry = registry
    app.state.chat = ChatService(registry, max_nick_length=settings.max_nick_length)

    app.include_router(users_router)
    app.include_router(events_router)
    app.include_router(ws_router)

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "participants": len(registry),
            "present": len(registry.present()),
        }

    return app


__all__ = ["create_app", "build_registry"]
