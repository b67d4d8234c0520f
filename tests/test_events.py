import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from chatroom.api.channels import event_payload
from chatroom.events import JoinEvent, LeaveEvent, MessageEvent


def test_message_event_payload_is_json_ready() -> None:
    event = MessageEvent(nick="alice", text="Hello", timestamp=datetime(2024, 1, 2, 3, 4, 5))
    payload = event.to_payload()

    assert payload == {
        "type": "message",
        "timestamp": "2024-01-02T03:04:05Z",
        "nick": "alice",
        "text": "Hello",
    }
    assert json.loads(event.to_json()) == payload


def test_blank_message_is_invalid() -> None:
    with pytest.raises(ValidationError):
        MessageEvent(nick="alice", text=" \n ")


def test_join_and_leave_events() -> None:
    assert JoinEvent(nick="bob").to_payload()["type"] == "join"
    leave = LeaveEvent(nick="bob", reason="timeout").to_payload()
    assert (leave["type"], leave["reason"]) == ("leave", "timeout")


def test_event_payload_passes_plain_dicts_through() -> None:
    assert event_payload({"type": "error"}) == {"type": "error"}
    assert event_payload(JoinEvent(nick="bob"))["nick"] == "bob"
