"""
Process-wide service instances shared by the routers.
"""

import logging

from config import PROFILE_STORE_BACKEND
from matching.logic.adapter import MongoProfileStore, SqlProfileStore
from matching.logic.engine import MatchEngine
from messaging.repository import MessageRepository
from messaging.service import MessagingService
from notifications.dispatcher import NotificationDispatcher
from notifications.repository import MatchRepository, NotificationRepository
from realtime.event_bus import RealtimeEventBus

logger = logging.getLogger("tutorlink")


def build_profile_store(backend: str = PROFILE_STORE_BACKEND):
    if backend == "mongo":
        return MongoProfileStore()
    if backend == "sql":
        return SqlProfileStore()
    raise RuntimeError(f"Unknown PROFILE_STORE_BACKEND: {backend!r}")


event_bus = RealtimeEventBus()
profile_store = build_profile_store()
match_repository = MatchRepository()
notification_repository = NotificationRepository()
message_repository = MessageRepository()

match_engine = MatchEngine(profile_store)
dispatcher = NotificationDispatcher(match_repository, notification_repository, event_bus)
messaging_service = MessagingService(message_repository, notification_repository, profile_store, event_bus)

logger.info("Services ready (profile store: %s)", PROFILE_STORE_BACKEND)
