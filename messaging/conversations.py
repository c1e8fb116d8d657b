from typing import Dict, Iterable, List

from models.schemas import ConversationOut, MessageOut


def build_conversations(user_id: str, messages: Iterable[MessageOut]) -> List[ConversationOut]:
    """
    Derive the user's conversation list from raw message rows.

    Groups by counterpart id. Each conversation carries the latest message by
    (created_at, id) and the number of unread messages addressed to the user.
    Most recent conversation first.
    """
    latest: Dict[str, MessageOut] = {}
    unread: Dict[str, int] = {}

    for message in messages:
        if message.sender_id == user_id:
            counterpart = message.receiver_id
        elif message.receiver_id == user_id:
            counterpart = message.sender_id
        else:
            continue

        current = latest.get(counterpart)
        if current is None or (message.created_at, message.id) > (current.created_at, current.id):
            latest[counterpart] = message

        unread.setdefault(counterpart, 0)
        if message.receiver_id == user_id and not message.read:
            unread[counterpart] += 1

    conversations = [
        ConversationOut(
            participant_id=counterpart,
            last_message=message.content,
            last_timestamp=message.created_at,
            unread_count=unread[counterpart],
        )
        for counterpart, message in latest.items()
    ]
    conversations.sort(
        key=lambda c: (latest[c.participant_id].created_at, latest[c.participant_id].id),
        reverse=True,
    )
    return conversations
