"""
Realtime WebSocket Routes

- WS /ws/notifications?token=...                      inbox session
- WS /ws/conversations/{counterpart_id}?token=...     conversation session

The client may send "resync" to rebuild its view from storage, or "ping".
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

import services
from utils.auth_utils import user_from_token
from .session import RealtimeSession

logger = logging.getLogger("tutorlink.realtime")

router = APIRouter(tags=["realtime"])

UNAUTHORIZED_CLOSE_CODE = 4401


async def _listen(websocket: WebSocket, session: RealtimeSession) -> None:
    try:
        while True:
            command = (await websocket.receive_text()).strip().lower()
            if command == "resync":
                await session.resync()
            elif command == "ping":
                session.push({"type": "pong"})
            else:
                session.push({"type": "error", "detail": f"Unknown command: {command}"})
    except WebSocketDisconnect:
        pass
    finally:
        await session.close()


async def _serve(websocket: WebSocket, token: Optional[str], counterpart_id: Optional[str]) -> None:
    user = user_from_token(token)
    if user is None:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return

    await websocket.accept()
    session = RealtimeSession(
        user.id,
        services.event_bus,
        services.messaging_service,
        services.notification_repository,
        counterpart_id=counterpart_id,
    )
    await session.connect()
    listener = asyncio.create_task(_listen(websocket, session))
    try:
        async for frame in session.updates():
            await websocket.send_json(frame)
    except WebSocketDisconnect:
        logger.info("Client %s went away", user.id)
    finally:
        listener.cancel()
        await session.close()


@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: Optional[str] = Query(default=None)):
    await _serve(websocket, token, None)


@router.websocket("/ws/conversations/{counterpart_id}")
async def conversation_socket(websocket: WebSocket, counterpart_id: str, token: Optional[str] = Query(default=None)):
    await _serve(websocket, token, counterpart_id)
