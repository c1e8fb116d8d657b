"""
Tests for the derived conversation list and the messaging routes.
"""

from datetime import datetime, timedelta

import pytest

from messaging.conversations import build_conversations
from models.schemas import MessageOut

T0 = datetime(2024, 3, 1, 10, 0)


def _msg(id, sender, receiver, minutes, read=False, content=None):
    return MessageOut(
        id=id, sender_id=sender, receiver_id=receiver,
        content=content or f"msg {id}", read=read, created_at=T0 + timedelta(minutes=minutes),
    )


# =============================================================================
# build_conversations
# =============================================================================

def test_groups_by_counterpart_most_recent_first():
    messages = [
        _msg(1, "tutor-a", "me", 0),
        _msg(2, "me", "tutor-a", 1, content="latest with a"),
        _msg(3, "tutor-b", "me", 5, content="latest with b"),
        _msg(4, "tutor-b", "me", 2, read=True),
    ]

    conversations = build_conversations("me", messages)

    assert [c.participant_id for c in conversations] == ["tutor-b", "tutor-a"]
    assert conversations[0].last_message == "latest with b"
    assert conversations[0].unread_count == 1
    assert conversations[1].last_message == "latest with a"
    assert conversations[1].unread_count == 1


def test_own_messages_never_count_as_unread():
    conversations = build_conversations("me", [_msg(1, "me", "tutor-a", 0)])
    assert conversations[0].unread_count == 0


def test_ties_on_timestamp_use_id():
    messages = [_msg(7, "tutor-a", "me", 0, content="seven"), _msg(9, "me", "tutor-a", 0, content="nine")]
    assert build_conversations("me", messages)[0].last_message == "nine"


def test_foreign_messages_are_ignored():
    assert build_conversations("me", [_msg(1, "x", "y", 0)]) == []


# =============================================================================
# ROUTES
# =============================================================================

@pytest.fixture
def people(seed_tutor, seed_student):
    seed_tutor("tutor-1", full_name="Asha")
    seed_tutor("tutor-2")
    seed_student("student-1", full_name="Ravi")


def test_send_and_read_conversation(client, auth_headers, people):
    student = auth_headers("student-1")
    tutor = auth_headers("tutor-1", "tutor")

    sent = client.post("/messages", json={"receiver_id": "tutor-1", "content": "Hello"}, headers=student)
    assert sent.status_code == 201
    body = sent.json()
    assert body["sender_id"] == "student-1"
    assert body["read"] is False

    client.post("/messages", json={"receiver_id": "student-1", "content": "Hi Ravi"}, headers=tutor)

    conversation = client.get("/messages/student-1", headers=tutor).json()
    assert [m["content"] for m in conversation] == ["Hello", "Hi Ravi"]

    assert client.get("/messages/unread-count", headers=tutor).json() == {"unread": 1}
    assert client.post("/messages/student-1/read", headers=tutor).json() == {"flipped": 1}
    assert client.get("/messages/unread-count", headers=tutor).json() == {"unread": 0}
    assert client.post("/messages/student-1/read", headers=tutor).json() == {"flipped": 0}


def test_conversation_list_route(client, auth_headers, people):
    student = auth_headers("student-1")
    client.post("/messages", json={"receiver_id": "tutor-1", "content": "first"}, headers=student)
    client.post("/messages", json={"receiver_id": "tutor-2", "content": "second"}, headers=student)
    client.post("/messages", json={"receiver_id": "student-1", "content": "reply"}, headers=auth_headers("tutor-1", "tutor"))

    conversations = client.get("/conversations", headers=student).json()

    assert [c["participant_id"] for c in conversations] == ["tutor-1", "tutor-2"]
    assert conversations[0]["last_message"] == "reply"
    assert conversations[0]["unread_count"] == 1
    assert conversations[1]["unread_count"] == 0


def test_message_errors(client, auth_headers, people):
    student = auth_headers("student-1")

    assert client.post("/messages", json={"receiver_id": "tutor-1", "content": "  "}, headers=student).status_code == 400
    assert client.post("/messages", json={"receiver_id": "nobody", "content": "hi"}, headers=student).status_code == 404
    assert client.post("/messages", json={"receiver_id": "tutor-1", "content": "hi"}).status_code == 401
    assert client.get("/messages/tutor-1", params={"limit": 0}, headers=student).status_code == 400
