"""
HarScout Request Executor

Runs a synthesized request against the live server so the user can check the
result. Also parses a curl command back into its parts, which is how an edited
command gets executed.
"""

import json
import logging
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .errors import NetworkError
from ..common.url_utils import URLMatcher

logger = logging.getLogger("harscout.executor")


@dataclass
class ParsedCurl:
    """Request parts recovered from a curl command."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


@dataclass
class ExecutionResult:
    """Response of a live request, or the reason it could not be made."""

    status: int = 0
    status_text: str = 'Error'
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ''
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'status': self.status,
            'statusText': self.status_text,
            'headers': self.headers,
            'body': self.body,
        }
        if self.error:
            data['error'] = self.error
        return data


_METHOD_FLAGS = ('-X', '--request')
_HEADER_FLAGS = ('-H', '--header')
_DATA_FLAGS = ('--data-raw', '--data', '--data-binary', '-d')


def parse_curl_command(command: str) -> Optional[ParsedCurl]:
    """
    Parse a curl command into method, URL, headers and body.

    Line continuations are joined and the command is tokenized with shell
    quoting rules, so '\\'' escapes round-trip. A body without an explicit
    method means POST, as it does for curl.

    Args:
        command: curl command line

    Returns:
        ParsedCurl, or None if the command cannot be tokenized or has no URL
    """
    if not command:
        return None

    try:
        tokens = shlex.split(command.replace('\\\n', ' '))
    except ValueError as e:
        logger.warning(f"Could not tokenize curl command: {e}")
        return None

    method: Optional[str] = None
    url = ''
    headers: Dict[str, str] = {}
    body: Optional[str] = None

    it = iter(tokens)
    for token in it:
        if token in _METHOD_FLAGS:
            method = next(it, 'GET').upper()
        elif token in _HEADER_FLAGS:
            name, sep, value = next(it, '').partition(':')
            if sep and name.strip():
                headers[name.strip()] = value.strip()
        elif token in _DATA_FLAGS:
            body = next(it, '')
        elif not url and URLMatcher.is_http_url(token):
            url = token

    if not url:
        logger.warning("Could not extract URL from curl command")
        return None

    if method is None:
        method = 'POST' if body is not None else 'GET'

    return ParsedCurl(method=method, url=url, headers=headers, body=body)


class RequestExecutor:
    """
    Execute a single HTTP request, no retries.

    Example:
        executor = RequestExecutor(timeout=30)
        result = executor.execute('GET', 'https://api.example.com/weather?city=SF', {})
        print(result.status, result.body[:200])
    """

    def __init__(self, timeout: int = 30, verify_ssl: bool = True, session: Optional[requests.Session] = None):
        """
        Initialize executor.

        Args:
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify SSL certificates
            session: Optional requests.Session (created if None)
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()

    def execute(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None
    ) -> ExecutionResult:
        """
        Perform the request.

        Args:
            method: HTTP method (default GET)
            url: Absolute http(s) URL
            headers: Request headers
            body: Request body text

        Returns:
            ExecutionResult; transport failures are reported in ``error``
        """
        if not URLMatcher.is_http_url(url):
            return ExecutionResult(error='Invalid URL', error_kind='invalid_url')

        try:
            response = self._send(method or 'GET', url, headers or {}, body)
        except NetworkError as e:
            logger.warning(f"Request to {url} failed: {e}")
            return ExecutionResult(error=str(e), error_kind=e.kind)

        return ExecutionResult(
            status=response.status_code,
            status_text=response.reason or '',
            headers=dict(response.headers),
            body=self._format_body(response)
        )

    def execute_curl(self, command: str) -> ExecutionResult:
        """Parse a curl command and execute it."""
        parsed = parse_curl_command(command)
        if parsed is None:
            return ExecutionResult(error='Failed to parse curl command', error_kind='invalid_command')
        return self.execute(parsed.method, parsed.url, parsed.headers, parsed.body)

    def _send(self, method: str, url: str, headers: Dict[str, str], body: Optional[str]) -> requests.Response:
        try:
            return self.session.request(
                method=method.upper(),
                url=url,
                headers=headers,
                data=body.encode('utf-8') if body is not None else None,
                timeout=self.timeout,
                verify=self.verify_ssl
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(str(e) or 'Network error occurred') from e

    @staticmethod
    def _format_body(response: requests.Response) -> str:
        content_type = response.headers.get('content-type', '')
        if 'application/json' in content_type:
            try:
                return json.dumps(response.json(), indent=2)
            except ValueError:
                pass
        return response.text

