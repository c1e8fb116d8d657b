"""
Tests for the notification inbox routes and typed payloads.
"""

import asyncio

import pytest
from pydantic import ValidationError as PydanticValidationError

from notifications.payloads import InterestPayload, MessagePayload, NewRequirementPayload, parse_payload
from notifications.repository import NotificationRepository


def _notify(recipient_id: str, sender_id: str = "someone", message_id: int = 1):
    return asyncio.run(NotificationRepository().create(
        recipient_id=recipient_id,
        title="New Message",
        message="You have a new message.",
        payload=MessagePayload(sender_id=sender_id, message_id=message_id),
    ))


def test_payload_variants_are_selected_by_kind():
    assert isinstance(parse_payload({"kind": "message", "sender_id": "s", "message_id": 3}), MessagePayload)
    assert isinstance(parse_payload({
        "kind": "interest", "requirement_id": "r", "tutor_id": "t", "status": "accepted",
    }), InterestPayload)
    parsed = parse_payload({
        "kind": "new_requirement", "requirement_id": "r", "student_id": "s",
        "subject": "maths", "location": "pune", "budget": "500+",
    })
    assert isinstance(parsed, NewRequirementPayload)
    assert parsed.urgency is None


def test_payload_with_unknown_kind_is_rejected():
    with pytest.raises(PydanticValidationError):
        parse_payload({"kind": "broadcast", "text": "hi"})


def test_stored_type_follows_payload_kind():
    note = _notify("tutor-1")
    assert note.type == "message"
    assert isinstance(note.payload, MessagePayload)


def test_inbox_lists_newest_first(client, auth_headers):
    first = _notify("tutor-1", message_id=1)
    second = _notify("tutor-1", message_id=2)
    _notify("tutor-2")

    inbox = client.get("/notifications", headers=auth_headers("tutor-1", "tutor")).json()

    assert [n["id"] for n in inbox["items"]] == [second.id, first.id]
    assert inbox["unread"] == 2


def test_mark_read_and_unread_filter(client, auth_headers):
    first = _notify("tutor-1")
    _notify("tutor-1")
    headers = auth_headers("tutor-1", "tutor")

    response = client.post(f"/notifications/{first.id}/read", headers=headers)

    assert response.status_code == 200
    assert response.json()["read"] is True
    unread = client.get("/notifications", params={"unread_only": True}, headers=headers).json()
    assert len(unread["items"]) == 1
    assert unread["unread"] == 1


def test_only_recipient_can_mark_read(client, auth_headers):
    note = _notify("tutor-1")

    assert client.post(f"/notifications/{note.id}/read", headers=auth_headers("tutor-2", "tutor")).status_code == 403
    assert client.post("/notifications/9999/read", headers=auth_headers("tutor-1", "tutor")).status_code == 404
