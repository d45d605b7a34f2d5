"""
AI Utilities for HarScout

Anthropic client setup for the disambiguation step. Disambiguation is
optional: every failure here leaves the caller with heuristic rank only.
"""

from typing import Optional, Any, Tuple

from .utils import get_api_key_from_env

try:
    import anthropic
    ANTHROPIC_AVAILABLE = True
except ImportError:
    anthropic = None
    ANTHROPIC_AVAILABLE = False

FALLBACK_NOTE = "  The top-ranked candidate will be used as the match"


def _unavailable(reason: str, hint: str, verbose: bool) -> Tuple[None, bool, str]:
    message = f"⚠ Claude disambiguation off: {reason}\n  {hint}\n{FALLBACK_NOTE}"
    if verbose:
        print(message)
    return None, False, message


def create_anthropic_client(
    api_key: Optional[str] = None,
    verbose: bool = True
) -> Tuple[Optional[Any], bool, str]:
    """
    Create the Anthropic client used to disambiguate top candidates.

    Args:
        api_key: Optional API key (if not provided, reads from ANTHROPIC_API_KEY env var)
        verbose: If True, prints status messages to stdout

    Returns:
        Tuple of (client, is_available, status_message); client is None when
        disambiguation is unavailable.

    Example:
        client, available, msg = create_anthropic_client(verbose=False)
        disambiguator = ClaudeDisambiguator(client) if available else None
    """
    if not ANTHROPIC_AVAILABLE:
        return _unavailable("anthropic library not installed", "Install: pip install anthropic", verbose)

    # API key comes from the environment only, never from the command line
    if api_key is None:
        api_key = get_api_key_from_env()

    if not api_key:
        return _unavailable("ANTHROPIC_API_KEY not set", "Set: export ANTHROPIC_API_KEY=your_key", verbose)

    try:
        client = anthropic.Anthropic(api_key=api_key)
    except Exception as e:
        return _unavailable(f"client initialization failed: {e}", "Check the anthropic installation", verbose)

    message = "✓ Claude disambiguation enabled"
    if verbose:
        print(message)
    return client, True, message
