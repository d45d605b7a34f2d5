"""
HarScout Relevance Scorer

Heuristic scoring of recorded requests against a natural-language description.

Every request is first normalized into a RequestShape, whichever form it arrives
in (fingerprint or raw HAR entry), then scored on:
- Exclusion of static assets (HTML, CSS, JS, images, fonts, media)
- Description keywords appearing in the URL path
- Description words semantically matching path segments
- Query parameter names mentioned in the description
- Keywords present in the request body
- Fixed bonuses for JSON responses, API-looking paths and non-GET methods
- Response size sweet spots
- A small penalty for very deep paths

Scores are integers clamped to [0, 100] and only comparable for one description.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .fingerprint import RequestFingerprint, TraceEntry
from ..common.url_utils import URLMatcher


@dataclass(frozen=True)
class RequestShape:
    """Uniform view of a request used by the scorer."""

    path: str
    method: str
    query: Tuple[str, ...] = ()
    body: str = ''
    mime: str = ''
    size: int = 0


def shape_from_fingerprint(fp: RequestFingerprint) -> RequestShape:
    """Normalize a fingerprint."""
    return RequestShape(
        path=fp.pathname or '',
        method=(fp.method or 'GET').upper(),
        query=tuple(q for q in fp.query_keys if q),
        body=fp.body_preview or '',
        mime=(fp.response_mime or '').lower(),
        size=fp.response_size or 0
    )


def shape_from_entry(entry: TraceEntry) -> RequestShape:
    """Normalize a raw trace entry; missing halves count as empty."""
    request = entry.request
    response = entry.response

    return RequestShape(
        path=request.pathname if request else '',
        method=(request.method if request else 'GET').upper(),
        query=tuple(q for q in request.query_keys if q) if request else (),
        body=request.post_text if request else '',
        mime=response.mime_type.lower() if response else '',
        size=response.size if response else 0
    )


STOP_WORDS = frozenset([
    'the', 'and', 'for', 'with', 'from', 'that', 'this',
    'your', 'you', 'are', 'was', 'were', 'been',
])

_NON_WORD = re.compile(r'[^\w\s]', re.ASCII)


def extract_words(text: str) -> List[str]:
    """Lower-case the text, turn punctuation into spaces and split on whitespace."""
    if not text:
        return []
    return _NON_WORD.sub(' ', text.lower()).split()


def extract_keywords(text: str) -> List[str]:
    """Words longer than two characters that are not stop-words."""
    return [w for w in extract_words(text) if len(w) > 2 and w not in STOP_WORDS]


def is_semantic_match(word: str, segment: str) -> bool:
    """
    Loose match between a description word and a path segment.

    Equal strings match; strings of at least three characters match when one
    contains the other; otherwise a single trailing 's' is folded away.
    """
    if word == segment:
        return True
    if len(word) >= 3 and len(segment) >= 3 and (word in segment or segment in word):
        return True
    return _singular(word) == _singular(segment)


def _singular(word: str) -> str:
    return word[:-1] if word.endswith('s') else word


@dataclass
class ScoreBreakdown:
    """Per-step contributions to a request's score."""

    excluded: bool = False
    keyword_score: int = 0
    segment_score: int = 0
    query_score: int = 0
    body_score: int = 0
    bonus_score: int = 0
    size_score: int = 0
    depth_penalty: int = 0
    reasons: List[str] = field(default_factory=list)

    @property
    def raw_total(self) -> int:
        return (
            self.keyword_score + self.segment_score + self.query_score +
            self.body_score + self.bonus_score + self.size_score - self.depth_penalty
        )

    @property
    def total(self) -> int:
        """Accumulated score clamped to [0, 100]; excluded requests score 0."""
        if self.excluded:
            return 0
        return max(RelevanceScorer.MIN_SCORE, min(RelevanceScorer.MAX_SCORE, self.raw_total))


class RelevanceScorer:
    """
    Keyword and shape based relevance scorer.

    Example:
        scorer = RelevanceScorer()
        keywords = extract_keywords("weather for a city")
        score = scorer.score(shape_from_fingerprint(fp), "weather for a city", keywords)
    """

    EXCLUDED_MIME_TYPES = (
        'text/html', 'text/css', 'application/javascript', 'text/javascript',
        'image/', 'font/', 'video/', 'audio/', 'application/font', 'application/x-font',
    )

    EXCLUDED_EXTENSIONS = (
        '.css', '.js', '.png', '.jpg', '.jpeg', '.gif', '.svg', '.ico',
        '.woff', '.woff2', '.ttf', '.eot', '.mp4', '.webp',
    )

    EXCLUDED_FILES = ('favicon.ico', 'robots.txt')

    API_KEYWORDS = ('api', 'v1', 'v2', 'v3', 'graphql', 'rest', 'json')

    # Responses smaller than this are beacons or empty acks unless they are JSON
    MIN_RESPONSE_SIZE = 50

    MAX_PATH_DEPTH = 6

    MIN_SCORE = 0
    MAX_SCORE = 100

    def score(self, shape: RequestShape, description: str, keywords: List[str]) -> int:
        """Score one request shape; see ``breakdown`` for the individual steps."""
        return self.breakdown(shape, description, keywords).total

    def should_exclude(self, shape: RequestShape) -> Optional[str]:
        """Return the exclusion reason for static or empty responses, else None."""
        path = shape.path.lower()
        mime = shape.mime.lower()

        for excluded in self.EXCLUDED_MIME_TYPES:
            if excluded in mime:
                return f"mime {excluded}"
        for ext in self.EXCLUDED_EXTENSIONS:
            if ext in path:
                return f"extension {ext}"
        for name in self.EXCLUDED_FILES:
            if name in path:
                return name
        if shape.size < self.MIN_RESPONSE_SIZE and 'json' not in mime:
            return f"size {shape.size} < {self.MIN_RESPONSE_SIZE}"
        return None

    def breakdown(self, shape: RequestShape, description: str, keywords: List[str]) -> ScoreBreakdown:
        """
        Score one request shape step by step.

        Args:
            shape: Normalized request
            description: Free-text description of the wanted endpoint
            keywords: Keywords extracted from the description

        Returns:
            ScoreBreakdown whose ``total`` is the final score
        """
        result = ScoreBreakdown()

        exclusion = self.should_exclude(shape)
        if exclusion:
            result.excluded = True
            result.reasons.append(f"excluded: {exclusion}")
            return result

        path = shape.path.lower()
        desc = (description or '').lower()
        segments = URLMatcher.path_segments(path)

        # Keywords in the path
        for k in keywords:
            if k in path:
                result.keyword_score += 3
                result.reasons.append(f"path contains '{k}'")
            if re.search(rf'\b{re.escape(k)}\b', path, re.ASCII):
                result.keyword_score += 2

        # Description words against path segments
        for w in extract_words(description):
            if any(is_semantic_match(w, s) for s in segments):
                result.segment_score += 1

        # Query parameter names
        for q in shape.query:
            key = q.lower()
            if key in desc:
                result.query_score += 2
                result.reasons.append(f"query key '{q}' in description")
            if any(k in key for k in keywords):
                result.query_score += 1

        # Request body
        if shape.body:
            body_lower = shape.body.lower()
            body_matches = sum(1 for k in keywords if k in body_lower)
            if body_matches > 0:
                result.body_score += 3 + body_matches
                result.reasons.append(f"{body_matches} keyword(s) in body")
                if '{' in shape.body:
                    result.body_score += 2

        # Fixed bonuses
        if 'json' in shape.mime:
            result.bonus_score += 4
        if any(k in path for k in self.API_KEYWORDS):
            result.bonus_score += 3
        if shape.method != 'GET':
            result.bonus_score += 2

        # Size sweet spots; the ranges overlap, values in both get +2
        if 300 < shape.size < 500_000:
            result.size_score += 1
        if 5_000 < shape.size < 200_000:
            result.size_score += 1

        if len(segments) > self.MAX_PATH_DEPTH:
            result.depth_penalty = 1

        return result
