"""
HarScout Disambiguator

Final pick among the top-ranked candidates.

The heuristic ranker narrows a trace down to a handful of plausible requests;
the disambiguator asks Claude which one best matches the user's description.
It is an optional collaborator: when it is missing, fails, or answers with
something unusable, the first-ranked candidate wins.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from .errors import DisambiguatorError
from .fingerprint import RequestFingerprint

logger = logging.getLogger("harscout.disambiguator")

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

SYSTEM_PROMPT = (
    "You are an API reverse engineering assistant. Your task is to analyze API request "
    "fingerprints and select the one that best matches a user's description. "
    "Return only the index number (0-based) of the best matching request."
)

# Body previews shown to the model are cut to this many characters
PROMPT_BODY_LIMIT = 300


class Disambiguator(ABC):
    """Anything that can pick one candidate out of several."""

    @abstractmethod
    def choose(self, description: str, candidates: Sequence[RequestFingerprint]) -> Optional[int]:
        """
        Pick the best candidate.

        Returns:
            0-based index into ``candidates``, or None for no preference.
            Implementations may raise; callers treat that as no preference.
        """


class ClaudeDisambiguator(Disambiguator):
    """
    Disambiguator backed by the Anthropic Messages API.

    Example:
        client, available, _ = create_anthropic_client(verbose=False)
        if available:
            chooser = ClaudeDisambiguator(client)
            index = chooser.choose("weather for a city", candidates)
    """

    def __init__(
        self,
        client: Any,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 10,
        temperature: float = 0.3
    ):
        """
        Initialize disambiguator.

        Args:
            client: anthropic.Anthropic instance
            model: Claude model name
            max_tokens: Reply budget; the reply is a single index
            temperature: Sampling temperature
        """
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def choose(self, description: str, candidates: Sequence[RequestFingerprint]) -> Optional[int]:
        prompt = build_prompt(description, candidates)

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}]
            )
        except Exception as e:
            raise DisambiguatorError(f"Claude request failed: {e}") from e

        text = _response_text(response)
        if not text:
            return None
        return extract_index(text)


def _response_text(response: Any) -> str:
    content = getattr(response, 'content', None) or []
    if not content:
        return ''
    return (getattr(content[0], 'text', '') or '').strip()


def extract_index(content: str) -> Optional[int]:
    """Return the first integer in the reply, or None."""
    match = re.search(r'\d+', content or '')
    if not match:
        return None
    return int(match.group(0))


def format_candidate(index: int, fp: RequestFingerprint) -> str:
    """Render one candidate for the prompt."""
    query_keys = ', '.join(fp.query_keys) or 'none'
    text = (
        f"[{index}] {fp.method} {fp.pathname}\n"
        f"  Query Keys: {query_keys}\n"
        f"  Response: {fp.response_mime} ({fp.response_size} bytes)"
    )
    if fp.body_preview:
        body = fp.body_preview
        if len(body) > PROMPT_BODY_LIMIT:
            body = body[:PROMPT_BODY_LIMIT] + '...'
        text += f"\n  Request Body Preview: {body}"
    return text


def build_prompt(description: str, candidates: Sequence[RequestFingerprint]) -> str:
    """Render the user prompt listing every candidate with its index."""
    candidates_text = "\n\n".join(format_candidate(i, fp) for i, fp in enumerate(candidates))

    return f"""User wants to reverse engineer this API: "{description}"

Here are the candidate API request fingerprints from the HAR file:

{candidates_text}

Which request (by index number) best matches the user's description? Consider:
- URL path and query parameter names relevance
- HTTP method appropriateness
- Response type and size
- Request body content (especially for POST/PUT requests with JSON bodies)
- Semantic meaning of the endpoint and body data

Return only the index number (0-based) of the best match."""


def pick_best_candidate(
    disambiguator: Optional[Disambiguator],
    description: str,
    candidates: List[RequestFingerprint]
) -> Optional[RequestFingerprint]:
    """
    Choose the winning candidate.

    - No candidates: None, the disambiguator is not consulted
    - One candidate: that candidate, the disambiguator is not consulted
    - No disambiguator configured: the first-ranked candidate
    - Otherwise the disambiguator's pick, falling back to the first-ranked
      candidate when it fails or answers with a missing or out-of-range index

    Args:
        disambiguator: Optional Disambiguator
        description: User's description of the wanted endpoint
        candidates: Ranked candidates, best first

    Returns:
        Winning fingerprint or None
    """
    if not candidates:
        return None

    if len(candidates) == 1:
        return candidates[0]

    if disambiguator is None:
        logger.debug("No disambiguator configured, using first-ranked candidate")
        return candidates[0]

    try:
        index = disambiguator.choose(description, candidates)
    except Exception as e:
        # DisambiguatorError from our own transports, anything else from custom ones
        logger.warning(f"Disambiguation failed ({e}), using first-ranked candidate")
        return candidates[0]

    if index is None or not 0 <= index < len(candidates):
        logger.info(f"Disambiguator gave no usable index ({index}), using first-ranked candidate")
        return candidates[0]

    logger.debug(f"Disambiguator picked candidate {index}: {candidates[index].pathname}")
    return candidates[index]
