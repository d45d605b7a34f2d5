"""
HarScout Common Utilities

Shared utilities and helpers used across HarScout modules.
"""

from .utils import get_api_key_from_env, TraceLoader
from .ai_utils import create_anthropic_client, ANTHROPIC_AVAILABLE
from .url_utils import URLMatcher

__all__ = [
    'get_api_key_from_env',
    'TraceLoader',
    'create_anthropic_client',
    'ANTHROPIC_AVAILABLE',
    'URLMatcher'
]
