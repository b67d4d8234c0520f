from .chat import ChatService
from .participants import DeliveryState, Participant, ParticipantRegistry, WaiterPolicy

__all__ = [
    "ChatService",
    "DeliveryState",
    "Participant",
    "ParticipantRegistry",
    "WaiterPolicy",
]
