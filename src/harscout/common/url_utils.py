"""
HarScout URL Utilities

Shared URL parsing helpers used by the normalizer and the fingerprint extractor.
"""

import re
from urllib.parse import urlparse
from typing import List


class URLMatcher:
    """Handles URL path extraction with a graceful fallback for malformed URLs."""

    # scheme://authority/path, stopping at the query string or fragment
    _PATH_FALLBACK = re.compile(r'^https?://[^/]+(/[^?#]*)')

    @staticmethod
    def extract_pathname(url: str) -> str:
        """
        Extract the path component of a URL.

        Absolute URLs are parsed normally; an absolute URL with no path
        yields "/". Anything that does not parse as an absolute URL falls
        back to a regex over the raw string, and failing that the URL is
        returned unchanged so scoring can still run on it.

        Args:
            url: URL to extract the path from

        Returns:
            Path string (never includes query or fragment when parsing succeeds)

        Example:
            URLMatcher.extract_pathname('https://api.example.com/v2/weather?city=SF')
            # '/v2/weather'
        """
        if not url:
            return ''

        try:
            parsed = urlparse(url)
            if parsed.scheme and parsed.netloc:
                return parsed.path or '/'
        except ValueError:
            pass

        match = URLMatcher._PATH_FALLBACK.match(url)
        return match.group(1) if match else url

    @staticmethod
    def path_segments(path: str) -> List[str]:
        """Split a path into its non-empty '/'-delimited segments."""
        return [s for s in path.split('/') if s]

    @staticmethod
    def is_http_url(url: str) -> bool:
        """True when the URL uses the http or https scheme."""
        return bool(url) and (url.startswith('http://') or url.startswith('https://'))
