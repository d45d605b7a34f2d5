"""
HarScout Analyze Module

Finds the recorded request that matches a description and turns it into curl.

This module provides:
- Fingerprints and typed HAR entries
- Heuristic relevance scoring and top-N ranking
- Chunked streaming sessions with bounded memory
- AI-powered final pick using Claude
- curl synthesis and live execution
"""

from .fingerprint import (
    RequestFingerprint,
    TraceEntry,
    HarRequest,
    HarResponse,
    HarHeader,
    extract_fingerprints,
)
from .scorer import (
    RelevanceScorer,
    RequestShape,
    ScoreBreakdown,
    extract_keywords,
    extract_words,
    shape_from_entry,
    shape_from_fingerprint,
)
from .ranker import HarRanker
from .session import SessionAggregator, SessionStore, SessionState, ChunkResult, FinalizeResult
from .disambiguator import Disambiguator, ClaudeDisambiguator, pick_best_candidate
from .curl import CurlGenerator, CurlResult
from .executor import RequestExecutor, ExecutionResult, parse_curl_command
from .service import AnalyzeService, AnalyzeMetrics
from .errors import (
    HarScoutError,
    SessionNotFoundError,
    InvalidEntryError,
    DisambiguatorError,
    NetworkError,
)

__all__ = [
    # Data
    'RequestFingerprint',
    'TraceEntry',
    'HarRequest',
    'HarResponse',
    'HarHeader',
    'extract_fingerprints',

    # Scoring
    'RelevanceScorer',
    'RequestShape',
    'ScoreBreakdown',
    'extract_keywords',
    'extract_words',
    'shape_from_entry',
    'shape_from_fingerprint',
    'HarRanker',

    # Sessions
    'SessionAggregator',
    'SessionStore',
    'SessionState',
    'ChunkResult',
    'FinalizeResult',

    # Disambiguation
    'Disambiguator',
    'ClaudeDisambiguator',
    'pick_best_candidate',

    # Output
    'CurlGenerator',
    'CurlResult',
    'RequestExecutor',
    'ExecutionResult',
    'parse_curl_command',

    # Service
    'AnalyzeService',
    'AnalyzeMetrics',

    # Errors
    'HarScoutError',
    'SessionNotFoundError',
    'InvalidEntryError',
    'DisambiguatorError',
    'NetworkError',
]
