from .events import router as events_router
from .users import router as users_router
from .ws import router as ws_router

__all__ = [
    "events_router",
    "users_router",
    "ws_router",
]
