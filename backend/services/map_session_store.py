"""
In-memory registry of map sessions (one MapController per browser tab).

Sessions live only as long as the process; the least recently used
session is evicted once MAX_MAP_SESSIONS is reached.
"""

import logging
from collections import OrderedDict
from typing import Callable, Optional

from config.settings import settings
from services.map_controller import MapController
from utils.id_generator import generate_session_id

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised for an unknown or evicted map session id."""


class MapSessionStore:
    """Creates, looks up and evicts map sessions."""

    def __init__(
        self,
        controller_factory: Optional[Callable[[str], MapController]] = None,
        max_sessions: Optional[int] = None,
    ):
        self._factory = controller_factory or (lambda sid: MapController(session_id=sid))
        self._max_sessions = max_sessions or settings.MAX_MAP_SESSIONS
        self._sessions: "OrderedDict[str, MapController]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> MapController:
        session_id = generate_session_id()
        controller = self._factory(session_id)
        self._sessions[session_id] = controller

        while len(self._sessions) > self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted map session", extra={"session_id": evicted})

        return controller

    def get(self, session_id: str) -> MapController:
        try:
            controller = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id)
        self._sessions.move_to_end(session_id)
        return controller
