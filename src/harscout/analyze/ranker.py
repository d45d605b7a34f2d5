"""
HarScout Ranker

Applies the relevance scorer across a collection of requests and keeps the
best few. Zero-scoring requests never take a slot; ties keep input order.
"""

from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .fingerprint import RequestFingerprint, TraceEntry
from .scorer import (
    RelevanceScorer,
    RequestShape,
    extract_keywords,
    shape_from_entry,
    shape_from_fingerprint,
)

T = TypeVar('T')

DEFAULT_TOP_N = 20


class HarRanker:
    """
    Rank fingerprints or raw entries against a description.

    Example:
        ranker = HarRanker()
        best = ranker.rank_fingerprints(fingerprints, "weather for a city")
        print(best[0].pathname if best else "nothing plausible")
    """

    def __init__(self, scorer: Optional[RelevanceScorer] = None, top_n: int = DEFAULT_TOP_N):
        """
        Initialize ranker.

        Args:
            scorer: Scorer to use (default RelevanceScorer)
            top_n: Maximum number of items returned by a ranking
        """
        self.scorer = scorer or RelevanceScorer()
        self.top_n = top_n

    def scored(
        self,
        items: Sequence[T],
        description: str,
        shape_fn: Callable[[T], RequestShape]
    ) -> List[Tuple[T, int]]:
        """
        Score every item, drop zeros and sort descending.

        Python's sort is stable, so equal scores keep their input order.
        A blank or non-string description scores with no text at all, leaving
        only the exclusion rules and fixed bonuses in play.
        """
        if not items:
            return []

        if isinstance(description, str) and description.strip():
            text = description
            keywords = extract_keywords(description)
        else:
            text = ''
            keywords = []

        pairs = [(item, self.scorer.score(shape_fn(item), text, keywords)) for item in items]
        pairs = [p for p in pairs if p[1] > 0]
        pairs.sort(key=lambda p: p[1], reverse=True)
        return pairs

    def rank(
        self,
        items: Sequence[T],
        description: str,
        shape_fn: Callable[[T], RequestShape]
    ) -> List[T]:
        """Return at most ``top_n`` items, best first."""
        return [item for item, _ in self.scored(items, description, shape_fn)[:self.top_n]]

    def rank_fingerprints(
        self,
        fingerprints: Sequence[RequestFingerprint],
        description: str
    ) -> List[RequestFingerprint]:
        """Rank fingerprints against a description."""
        return self.rank(fingerprints, description, shape_from_fingerprint)

    def rank_entries(self, entries: Sequence[TraceEntry], description: str) -> List[TraceEntry]:
        """Rank raw trace entries against a description."""
        return self.rank(entries, description, shape_from_entry)

    def score_fingerprint(self, fp: RequestFingerprint, description: str) -> int:
        """Score a single fingerprint the same way ``rank_fingerprints`` does."""
        pairs = self.scored([fp], description, shape_from_fingerprint)
        return pairs[0][1] if pairs else 0
