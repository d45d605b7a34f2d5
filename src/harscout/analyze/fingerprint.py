"""
HarScout Fingerprints and Trace Entries

Typed views over HAR data:
- RequestFingerprint: compact, size-bounded summary of one exchange used for scoring
- TraceEntry: validated view of one raw HAR entry, used for normalization and curl output
- extract_fingerprints: maps a HAR document to one fingerprint per entry
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple

from ..common.url_utils import URLMatcher

# Request bodies are trimmed to this many characters in a fingerprint
BODY_PREVIEW_LIMIT = 500


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str:
    """Scalars become their string form; missing values and containers become ''."""
    if value is None or isinstance(value, (dict, list, tuple)):
        return ''
    return value if isinstance(value, str) else str(value)


def _as_names(value: Any) -> Tuple[str, ...]:
    """Keep the string items of a list; a lone string counts as one name."""
    if isinstance(value, str):
        return (value,) if value else ()
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v for v in value if isinstance(v, str))


@dataclass(frozen=True)
class RequestFingerprint:
    """Compact summary of one recorded exchange."""

    id: str
    method: str
    pathname: str
    query_keys: Tuple[str, ...] = ()
    response_mime: str = ''
    response_size: int = 0
    body_preview: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RequestFingerprint':
        """
        Create a fingerprint from its camelCase wire form.

        Field types are coerced: scalars become strings, non-string query
        keys are dropped and a bad size counts as 0.
        """
        return cls(
            id=_as_str(data.get('id')),
            method=_as_str(data.get('method')) or 'GET',
            pathname=_as_str(data.get('pathname')),
            query_keys=_as_names(data.get('queryKeys')),
            response_mime=_as_str(data.get('responseMime')),
            response_size=_as_int(data.get('responseSize')),
            body_preview=_as_str(data.get('bodyPreview')) or None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire form."""
        data = {
            'id': self.id,
            'method': self.method,
            'pathname': self.pathname,
            'queryKeys': list(self.query_keys),
            'responseMime': self.response_mime,
            'responseSize': self.response_size,
        }
        if self.body_preview is not None:
            data['bodyPreview'] = self.body_preview
        return data


@dataclass(frozen=True)
class HarHeader:
    """Single request header, in recorded order."""

    name: str
    value: str


@dataclass(frozen=True)
class HarRequest:
    """Request half of a HAR entry."""

    method: str = 'GET'
    url: str = ''
    headers: Tuple[HarHeader, ...] = ()
    query_keys: Tuple[str, ...] = ()
    post_text: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HarRequest':
        headers = tuple(
            HarHeader(name=_as_str(h.get('name')), value=_as_str(h.get('value')))
            for h in _as_list(data.get('headers'))
            if isinstance(h, dict)
        )
        query_keys = tuple(
            _as_str(q.get('name'))
            for q in _as_list(data.get('queryString'))
            if isinstance(q, dict)
        )
        post_data = _as_dict(data.get('postData'))
        return cls(
            method=_as_str(data.get('method')) or 'GET',
            url=_as_str(data.get('url')),
            headers=headers,
            query_keys=query_keys,
            post_text=_as_str(post_data.get('text'))
        )

    @property
    def pathname(self) -> str:
        return URLMatcher.extract_pathname(self.url)


@dataclass(frozen=True)
class HarResponse:
    """Response half of a HAR entry, reduced to what scoring needs."""

    mime_type: str = ''
    size: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HarResponse':
        content = _as_dict(data.get('content'))
        return cls(
            mime_type=_as_str(content.get('mimeType')),
            size=_as_int(content.get('size'))
        )


@dataclass(frozen=True)
class TraceEntry:
    """
    Validated view of a raw HAR entry.

    A missing or malformed request object yields ``request=None`` rather than
    an exception; callers decide what an entry without a request means.
    """

    request: Optional[HarRequest] = None
    response: Optional[HarResponse] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> 'TraceEntry':
        if not isinstance(data, dict):
            return cls()

        request = data.get('request')
        response = data.get('response')
        return cls(
            request=HarRequest.from_dict(request) if isinstance(request, dict) else None,
            response=HarResponse.from_dict(response) if isinstance(response, dict) else None,
            raw=data
        )

    @property
    def is_valid(self) -> bool:
        return self.request is not None


def fingerprint_from_entry(entry: TraceEntry, index: int) -> RequestFingerprint:
    """Summarize one trace entry; ``index`` becomes the fingerprint id."""
    request = entry.request or HarRequest()
    response = entry.response or HarResponse()
    post_text = request.post_text

    return RequestFingerprint(
        id=str(index),
        method=request.method,
        pathname=request.pathname,
        query_keys=request.query_keys,
        response_mime=response.mime_type,
        response_size=response.size,
        body_preview=post_text[:BODY_PREVIEW_LIMIT] if post_text else None
    )


def extract_fingerprints(har: Any) -> List[RequestFingerprint]:
    """
    Map every entry of a HAR document to a fingerprint.

    Accepts a full HAR document ({"log": {"entries": [...]}}) or a bare list of
    entries. Anything else yields an empty list.

    Example:
        fingerprints = extract_fingerprints(json.load(open('session.har')))
        print(fingerprints[0].pathname)
    """
    if isinstance(har, list):
        entries = har
    else:
        log = _as_dict(_as_dict(har).get('log'))
        entries = log.get('entries')
        if not isinstance(entries, list):
            return []

    return [
        fingerprint_from_entry(TraceEntry.from_dict(e), i)
        for i, e in enumerate(entries)
    ]
