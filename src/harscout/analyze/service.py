"""
HarScout Analyze Service

Single entry point for callers: one-shot ranking, chunked sessions,
curl synthesis and live execution. Every operation returns a result object;
failures are reported in the result rather than raised.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from .curl import CurlGenerator, CurlResult
from .disambiguator import Disambiguator, pick_best_candidate
from .errors import InvalidEntryError, SessionNotFoundError
from .executor import ExecutionResult, RequestExecutor
from .fingerprint import RequestFingerprint, TraceEntry
from .ranker import HarRanker
from .session import (
    NO_MATCH_ERROR,
    ChunkResult,
    FinalizeResult,
    SessionAggregator,
    SessionStore,
)

logger = logging.getLogger("harscout.service")

SESSION_NOT_INITIALIZED_ERROR = 'Session not found. Please initialize session first.'
SESSION_NOT_FOUND_ERROR = 'Session not found'
INVALID_ENTRY_ERROR = 'Invalid HAR entry'
CURL_FAILED_ERROR = 'Failed to generate curl command'


@dataclass
class AnalyzeMetrics:
    """Track analysis activity."""

    sessions_started: int = 0
    chunks_processed: int = 0
    items_processed: int = 0
    sessions_finalized: int = 0
    sessions_matched: int = 0
    commands_generated: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self, sessions_active: int = 0, sessions_evicted: int = 0) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'sessions_started': self.sessions_started,
            'sessions_active': sessions_active,
            'sessions_evicted': sessions_evicted,
            'chunks_processed': self.chunks_processed,
            'items_processed': self.items_processed,
            'sessions_finalized': self.sessions_finalized,
            'match_rate': round((self.sessions_matched / self.sessions_finalized * 100) if self.sessions_finalized > 0 else 0, 2),
            'commands_generated': self.commands_generated,
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class AnalyzeService:
    """
    Facade over ranking, session aggregation, disambiguation and curl output.

    Example:
        service = AnalyzeService()
        service.init_session('abc', 'weather for a city')
        service.submit_chunk('abc', fingerprints[:500])
        service.submit_chunk('abc', fingerprints[500:])
        result = service.finalize_session('abc')
        if result.request_id is not None:
            entry = entries[int(result.request_id)]
            print(service.synthesize_command(entry).curl)
    """

    def __init__(
        self,
        ranker: Optional[HarRanker] = None,
        store: Optional[SessionStore] = None,
        disambiguator: Optional[Disambiguator] = None,
        executor: Optional[RequestExecutor] = None
    ):
        self.ranker = ranker or HarRanker()
        self.disambiguator = disambiguator
        self.aggregator = SessionAggregator(self.ranker, store or SessionStore(), disambiguator)
        self.executor = executor or RequestExecutor()
        self.metrics = AnalyzeMetrics()

    @property
    def store(self) -> SessionStore:
        return self.aggregator.store

    # ------------------------------------------------------------------
    # One-shot
    # ------------------------------------------------------------------

    def rank_one_shot(self, fingerprints: Sequence[RequestFingerprint], description: str) -> List[RequestFingerprint]:
        """Stateless top-N ranking."""
        return self.ranker.rank_fingerprints(fingerprints, description)

    def run(self, fingerprints: Sequence[RequestFingerprint], description: str) -> FinalizeResult:
        """Rank a whole trace and pick the winner in one call."""
        candidates = self.rank_one_shot(fingerprints, description)
        best = pick_best_candidate(self.disambiguator, description, candidates)
        if best is None:
            return FinalizeResult(error=NO_MATCH_ERROR, error_kind='no_match')
        return FinalizeResult(request_id=best.id, candidates=len(candidates))

    # ------------------------------------------------------------------
    # Streaming sessions
    # ------------------------------------------------------------------

    def init_session(self, session_id: str, description: str) -> None:
        self.aggregator.initialize(session_id, description)
        self.metrics.sessions_started += 1

    def submit_chunk(self, session_id: str, chunk: Sequence[RequestFingerprint]) -> ChunkResult:
        try:
            self.aggregator.process_chunk(session_id, chunk)
        except SessionNotFoundError as e:
            return ChunkResult(success=False, error=SESSION_NOT_INITIALIZED_ERROR, error_kind=e.kind)

        self.metrics.chunks_processed += 1
        self.metrics.items_processed += len(chunk or [])
        return ChunkResult(success=True)

    def finalize_session(self, session_id: str) -> FinalizeResult:
        try:
            result = self.aggregator.finalize(session_id)
        except SessionNotFoundError as e:
            return FinalizeResult(error=SESSION_NOT_FOUND_ERROR, error_kind=e.kind)

        self.metrics.sessions_finalized += 1
        if result.matched:
            self.metrics.sessions_matched += 1
        return result

    def cleanup_session(self, session_id: str) -> None:
        self.aggregator.cleanup(session_id)

    # ------------------------------------------------------------------
    # Command synthesis and execution
    # ------------------------------------------------------------------

    def synthesize_command(self, entry: Union[TraceEntry, Dict[str, Any], None]) -> CurlResult:
        """
        Render the selected HAR entry as a curl command.

        Accepts either a parsed TraceEntry or the raw entry dict.
        """
        try:
            trace_entry = entry if isinstance(entry, TraceEntry) else TraceEntry.from_dict(entry)
            if not trace_entry.is_valid:
                raise InvalidEntryError(INVALID_ENTRY_ERROR)
            curl = CurlGenerator.from_entry(trace_entry)
        except InvalidEntryError as e:
            return CurlResult(error=INVALID_ENTRY_ERROR, error_kind=e.kind)
        except Exception:
            logger.exception("Error generating curl")
            return CurlResult(error=CURL_FAILED_ERROR, error_kind=InvalidEntryError.kind)

        self.metrics.commands_generated += 1
        return CurlResult(curl=curl, request=trace_entry.raw)

    def execute_request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None
    ) -> ExecutionResult:
        """Pass-through live request; see RequestExecutor."""
        return self.executor.execute(method, url, headers, body)

    def execute_curl(self, command: str) -> ExecutionResult:
        """Run a curl command, typically one produced by synthesize_command."""
        return self.executor.execute_curl(command)

    def metrics_snapshot(self) -> Dict[str, Any]:
        return self.metrics.to_dict(
            sessions_active=len(self.store),
            sessions_evicted=self.store.evicted_count
        )
