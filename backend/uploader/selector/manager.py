"""In-memory registry of selector sessions.

Each browser session gets its own ``ImageSelectorController``, created when
the widget first loads or drops files and dropped when the session ends or
has been idle for ``selector.session_idle_minutes``. Nothing is persisted.
"""
import logging
import time
from typing import Dict, List, Optional

import httpx

from uploader.config import get_config

from .controller import ImageSelectorController

logger = logging.getLogger(__name__)


class SelectorSessionManager:
    """Maps session ids to their selector controllers.

    Idle sessions are swept on every lookup, so no background task is needed.

    Note:
        Singleton-style global instance shared by all selector routes.
        Not thread-safe; meant for a single event loop.
    """

    def __init__(self) -> None:
        # session_id -> controller
        self.sessions: Dict[str, ImageSelectorController] = {}

        # session_id -> monotonic time of last access
        self.last_seen: Dict[str, float] = {}

        # httpx transport handed to new controllers (tests swap in ASGI/mock transports)
        self.transport: Optional[httpx.AsyncBaseTransport] = None

    def _idle_seconds(self) -> float:
        return get_config().selector.session_idle_minutes * 60

    def evict_idle(self, now: Optional[float] = None) -> List[str]:
        """Drop sessions not touched within the idle window."""
        now = time.monotonic() if now is None else now
        cutoff = now - self._idle_seconds()
        expired = [sid for sid, seen in self.last_seen.items() if seen < cutoff]
        for session_id in expired:
            self.sessions.pop(session_id, None)
            del self.last_seen[session_id]
            logger.info(f"[Sessions] Evicted idle selector session {session_id}")
        return expired

    def get(self, session_id: str) -> Optional[ImageSelectorController]:
        """Return an existing session and mark it active, or None."""
        self.evict_idle()
        controller = self.sessions.get(session_id)
        if controller is not None:
            self.last_seen[session_id] = time.monotonic()
        return controller

    def get_or_create(self, session_id: str) -> ImageSelectorController:
        controller = self.get(session_id)
        if controller is None:
            config = get_config()
            controller = ImageSelectorController(
                upload_url=config.client.upload_url,
                settings=config.selector.model_copy(deep=True),
                timeout_seconds=config.client.timeout_seconds,
                transport=self.transport,
            )
            self.sessions[session_id] = controller
            self.last_seen[session_id] = time.monotonic()
            logger.info(f"[Sessions] Created selector session {session_id}")
        return controller

    def end_session(self, session_id: str) -> bool:
        """Drop all state of a session. Returns False if it did not exist."""
        removed = self.sessions.pop(session_id, None) is not None
        self.last_seen.pop(session_id, None)
        if removed:
            logger.info(f"[Sessions] Ended selector session {session_id}")
        return removed

    def clear(self) -> None:
        """Drop every session (for testing)."""
        self.sessions.clear()
        self.last_seen.clear()


manager = SelectorSessionManager()
