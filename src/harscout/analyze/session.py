"""
HarScout Streaming Sessions

Lets a client submit a large trace in chunks while only the best candidates
seen so far are kept in memory.

Session lifecycle:
    initialize -> process_chunk (any number of times) -> finalize | cleanup

After every chunk the retained list is exactly the top-N over everything
submitted so far, whatever the chunk sizes were: the new chunk is ranked,
appended after the current candidates and the whole list is re-ranked. Since
ranking is a stable sort, earlier items still win ties.

Sessions live in a SessionStore with an idle TTL and a size cap, so abandoned
sessions are reclaimed instead of leaking.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .disambiguator import Disambiguator, pick_best_candidate
from .errors import SessionNotFoundError
from .fingerprint import RequestFingerprint
from .ranker import HarRanker

logger = logging.getLogger("harscout.session")

NO_MATCH_ERROR = 'No matching request found'
FINALIZE_FAILED_ERROR = 'Failed to finalize session'


@dataclass
class SessionState:
    """Per-session streaming state."""

    description: str
    top_candidates: List[RequestFingerprint] = field(default_factory=list)
    total_processed: int = 0
    created_at: float = 0.0
    last_access: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'candidates': len(self.top_candidates),
            'total_processed': self.total_processed,
            'created_at': self.created_at,
            'last_access': self.last_access
        }


@dataclass
class ChunkResult:
    """Outcome of submitting one chunk."""

    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'success': self.success}
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class FinalizeResult:
    """Outcome of finalizing a session or a one-shot analysis."""

    request_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    candidates: int = 0

    @property
    def matched(self) -> bool:
        return self.request_id is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'requestId': self.request_id}
        if self.error:
            data['error'] = self.error
        return data


class SessionStore:
    """
    In-memory session map with idle expiry and LRU eviction.

    Args:
        ttl_seconds: Idle time after which a session is dropped (None or 0 = never)
        max_sessions: Maximum live sessions; the least recently used one is
            evicted to make room (0 = unlimited)
        clock: Monotonic time source, injectable for tests

    Example:
        store = SessionStore(ttl_seconds=600, max_sessions=100)
        store.put('abc', SessionState(description='weather for a city'))
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = 1800,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self.clock = clock
        self.lock = threading.RLock()
        self.evicted_count = 0
        self._sessions: 'OrderedDict[str, SessionState]' = OrderedDict()

    def __len__(self) -> int:
        with self.lock:
            self.purge_expired()
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self.lock:
            self.purge_expired()
            return session_id in self._sessions

    def put(self, session_id: str, state: SessionState) -> None:
        """Insert or overwrite a session, evicting the oldest if full."""
        with self.lock:
            self.purge_expired()
            now = self.clock()
            state.created_at = now
            state.last_access = now

            self._sessions.pop(session_id, None)
            while self.max_sessions and len(self._sessions) >= self.max_sessions:
                oldest_id, _ = self._sessions.popitem(last=False)
                self.evicted_count += 1
                logger.warning(f"Session store full ({self.max_sessions}), evicted {oldest_id}")
            self._sessions[session_id] = state

    def get(self, session_id: str) -> Optional[SessionState]:
        """Return a live session and mark it as recently used."""
        with self.lock:
            self.purge_expired()
            state = self._sessions.get(session_id)
            if state is not None:
                state.last_access = self.clock()
                self._sessions.move_to_end(session_id)
            return state

    def discard(self, session_id: str, expected: Optional[SessionState] = None) -> bool:
        """
        Remove a session if present.

        With ``expected`` set, only that exact state object is removed, so a
        session re-initialized in the meantime survives.
        """
        with self.lock:
            current = self._sessions.get(session_id)
            if current is None:
                return False
            if expected is not None and current is not expected:
                return False
            del self._sessions[session_id]
            return True

    def purge_expired(self) -> int:
        """Drop sessions idle for longer than the TTL; returns how many."""
        if not self.ttl_seconds:
            return 0

        with self.lock:
            cutoff = self.clock() - self.ttl_seconds
            expired = [sid for sid, s in self._sessions.items() if s.last_access <= cutoff]
            for sid in expired:
                del self._sessions[sid]
                logger.info(f"Session {sid} expired after {self.ttl_seconds}s idle")
            self.evicted_count += len(expired)
            return len(expired)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Summaries of all live sessions."""
        with self.lock:
            self.purge_expired()
            return {sid: s.to_dict() for sid, s in self._sessions.items()}


class SessionAggregator:
    """
    Streaming top-N aggregation over chunked fingerprint submissions.

    Callers are expected to drive one session sequentially; the store lock
    additionally serializes chunk merges so overlapping submissions on the
    same id cannot interleave.

    Example:
        aggregator = SessionAggregator(HarRanker(), SessionStore())
        aggregator.initialize('abc', 'weather for a city')
        for chunk in chunks:
            aggregator.process_chunk('abc', chunk)
        result = aggregator.finalize('abc')
    """

    def __init__(
        self,
        ranker: Optional[HarRanker] = None,
        store: Optional[SessionStore] = None,
        disambiguator: Optional[Disambiguator] = None
    ):
        self.ranker = ranker or HarRanker()
        self.store = store or SessionStore()
        self.disambiguator = disambiguator

    def initialize(self, session_id: str, description: str) -> None:
        """Start a session, silently replacing any existing one with this id."""
        self.store.put(session_id, SessionState(description=description))
        logger.debug(f"Session {session_id} initialized")

    def process_chunk(self, session_id: str, chunk: Sequence[RequestFingerprint]) -> SessionState:
        """
        Merge one chunk into the session's retained candidates.

        Raises:
            SessionNotFoundError: If the session is not active
        """
        with self.store.lock:
            state = self.store.get(session_id)
            if state is None:
                raise SessionNotFoundError(session_id)

            chunk = list(chunk or [])
            ranked_chunk = self.ranker.rank_fingerprints(chunk, state.description)
            merged = self.ranker.rank_fingerprints(
                state.top_candidates + ranked_chunk,
                state.description
            )
            state.top_candidates = merged[:self.ranker.top_n]
            state.total_processed += len(chunk)

        logger.debug(
            f"Session {session_id}: +{len(chunk)} items, "
            f"{state.total_processed} processed, {len(state.top_candidates)} retained"
        )
        return state

    def finalize(self, session_id: str) -> FinalizeResult:
        """
        Pick the winner among the retained candidates and end the session.

        The session is removed whatever the outcome.

        Raises:
            SessionNotFoundError: If the session is not active
        """
        state = self.store.get(session_id)
        if state is None:
            raise SessionNotFoundError(session_id)

        try:
            best = pick_best_candidate(self.disambiguator, state.description, state.top_candidates)
            if best is None:
                return FinalizeResult(error=NO_MATCH_ERROR, error_kind='no_match')
            return FinalizeResult(request_id=best.id, candidates=len(state.top_candidates))
        except Exception:
            logger.exception(f"Error finalizing session {session_id}")
            return FinalizeResult(error=FINALIZE_FAILED_ERROR, error_kind='finalize_failed')
        finally:
            self.store.discard(session_id, expected=state)
            logger.debug(f"Session {session_id} finalized after {state.total_processed} items")

    def cleanup(self, session_id: str) -> None:
        """Drop a session if it exists."""
        if self.store.discard(session_id):
            logger.debug(f"Session {session_id} cleaned up")
