"""
HarScout curl Generator

Renders a recorded HAR entry as an equivalent, copy-pasteable curl command.

Output rules:
- URL, headers and body are single-quoted, with embedded quotes written as '\\''
- Headers curl derives on its own (Host, Content-Length, ...) and HTTP/2
  pseudo-headers are left out
- -X is only written when curl would not infer the method itself
- One flag per line, joined with shell line continuations
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .fingerprint import TraceEntry

EXCLUDED_HEADERS = frozenset([
    'host',
    'connection',
    'content-length',
    'accept-encoding',
    ':authority',
    ':method',
    ':path',
    ':scheme',
    ':status',
])

LINE_JOIN = ' \\\n  '


def escape_single_quotes(text: str) -> str:
    """Make text safe to wrap in single quotes: ' becomes '\\''."""
    return text.replace("'", "'\\''")


def quote(text: str) -> str:
    return f"'{escape_single_quotes(text)}'"


def is_excluded_header(name: str) -> bool:
    return name.lower() in EXCLUDED_HEADERS or name.startswith(':')


@dataclass
class CurlResult:
    """Outcome of synthesizing a command for one entry."""

    curl: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    request: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'curl': self.curl}
        if self.error:
            data['error'] = self.error
        if self.request is not None:
            data['request'] = self.request
        return data


class CurlGenerator:
    """
    Build curl commands from HAR entries.

    Example:
        entry = TraceEntry.from_dict(har['log']['entries'][3])
        print(CurlGenerator.from_entry(entry))
    """

    @staticmethod
    def from_entry(entry: TraceEntry) -> str:
        """
        Render a trace entry as a curl command.

        Args:
            entry: Parsed HAR entry

        Returns:
            Multi-line curl command, or '' when the entry has no request
        """
        request = entry.request
        if request is None:
            return ''

        method = (request.method or 'GET').upper()
        has_body = bool(request.post_text)

        parts: List[str] = ['curl', quote(request.url)]

        if method != 'GET' and (not has_body or method != 'POST'):
            parts.append(f'-X {method}')

        for header in request.headers:
            if is_excluded_header(header.name):
                continue
            parts.append(f"-H {quote(f'{header.name}: {header.value}')}")

        if has_body:
            parts.append(f'--data-raw {quote(request.post_text)}')

        return LINE_JOIN.join(parts)
