import logging
import time
from typing import Callable, Optional

from clarity.session import CallRequest, CallSession

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


class SessionStore:
    """In-memory call sessions keyed by call id.

    Webhooks for one call arrive serialized from the telephony provider and
    the app runs on a single event loop, so the dict needs no lock. Sessions
    idle longer than ``ttl_seconds`` are evicted on the next store access.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, CallSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, call_id: str) -> bool:
        return call_id in self._sessions

    def create(self, call_id: str, request: CallRequest, started_at: Optional[float] = None) -> CallSession:
        self.evict_expired()
        if call_id in self._sessions:
            logger.warning("Replacing existing session for call %s", call_id)
        session = CallSession(
            call_id=call_id,
            request=request,
            started_at=started_at if started_at is not None else self._clock(),
        )
        self._sessions[call_id] = session
        return session

    def get(self, call_id: str) -> Optional[CallSession]:
        self.evict_expired()
        return self._sessions.get(call_id)

    def mutate(self, call_id: str, fn: Callable[[CallSession], object]):
        """Apply ``fn`` to the session and touch its activity time.

        Returns whatever ``fn`` returns, or None when the session is gone.
        """
        session = self.get(call_id)
        if session is None:
            return None
        result = fn(session)
        session.last_activity = self._clock()
        return result

    def delete(self, call_id: str) -> Optional[CallSession]:
        return self._sessions.pop(call_id, None)

    def evict_expired(self) -> list[str]:
        if not self.ttl_seconds:
            return []
        cutoff = self._clock() - self.ttl_seconds
        expired = [cid for cid, s in self._sessions.items() if s.last_activity < cutoff]
        for cid in expired:
            del self._sessions[cid]
        if expired:
            logger.info("Evicted %d idle call session(s): %s", len(expired), ", ".join(expired))
        return expired
