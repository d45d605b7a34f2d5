"""
Tests for HarScout fingerprints and typed trace entries.

Tests:
- TraceEntry parsing, including malformed entries
- Fingerprint wire format round trip
- extract_fingerprints over HAR documents
"""

import pytest

from harscout.analyze.fingerprint import (
    BODY_PREVIEW_LIMIT,
    HarHeader,
    RequestFingerprint,
    TraceEntry,
    extract_fingerprints,
)


@pytest.fixture
def post_entry():
    """HAR entry for a JSON POST."""
    return {
        'request': {
            'method': 'post',
            'url': 'https://api.example.com/v1/search?lang=en&page=2',
            'headers': [
                {'name': 'Host', 'value': 'api.example.com'},
                {'name': 'Content-Type', 'value': 'application/json'},
            ],
            'queryString': [
                {'name': 'lang', 'value': 'en'},
                {'name': 'page', 'value': '2'},
            ],
            'postData': {'mimeType': 'application/json', 'text': '{"q": "jokes"}'}
        },
        'response': {
            'status': 200,
            'content': {'mimeType': 'application/json; charset=utf-8', 'size': 1234}
        }
    }


class TestTraceEntry:
    """Test TraceEntry.from_dict."""

    def test_full_entry(self, post_entry):
        """Test that every field is picked up."""
        entry = TraceEntry.from_dict(post_entry)

        assert entry.is_valid
        assert entry.request.method == 'post'
        assert entry.request.url == 'https://api.example.com/v1/search?lang=en&page=2'
        assert entry.request.pathname == '/v1/search'
        assert entry.request.headers[1] == HarHeader('Content-Type', 'application/json')
        assert entry.request.query_keys == ('lang', 'page')
        assert entry.request.post_text == '{"q": "jokes"}'
        assert entry.response.mime_type == 'application/json; charset=utf-8'
        assert entry.response.size == 1234
        assert entry.raw is post_entry

    def test_missing_request(self):
        """Test that an entry without a request is the invalid variant."""
        entry = TraceEntry.from_dict({'response': {'content': {'size': 10}}})

        assert entry.request is None
        assert entry.is_valid is False
        assert entry.response.size == 10

    def test_non_dict_request(self):
        entry = TraceEntry.from_dict({'request': 'GET /'})
        assert entry.request is None

    def test_non_dict_entry(self):
        """Test that garbage input yields an empty entry instead of raising."""
        for value in (None, 42, 'entry', ['a']):
            entry = TraceEntry.from_dict(value)
            assert entry.request is None
            assert entry.response is None

    def test_defaults(self):
        """Test defaults for a bare request object."""
        entry = TraceEntry.from_dict({'request': {}})

        assert entry.request.method == 'GET'
        assert entry.request.url == ''
        assert entry.request.headers == ()
        assert entry.request.post_text == ''
        assert entry.response is None

    def test_bad_size(self):
        entry = TraceEntry.from_dict({'request': {}, 'response': {'content': {'size': 'n/a'}}})
        assert entry.response.size == 0

    def test_field_types_coerced(self):
        """Test that numeric fields and malformed lists do not break parsing."""
        entry = TraceEntry.from_dict({
            'request': {
                'method': 1,
                'url': 200,
                'headers': {'Accept': '*/*'},
                'queryString': [{'name': 5}, 'city', {'value': 'x'}],
                'postData': {'text': 42}
            },
            'response': {'content': {'mimeType': 3}}
        })

        assert entry.request.method == '1'
        assert entry.request.url == '200'
        assert entry.request.headers == ()
        assert entry.request.query_keys == ('5', '')
        assert entry.request.post_text == '42'
        assert entry.response.mime_type == '3'


class TestRequestFingerprint:
    """Test the fingerprint wire format."""

    def test_from_dict(self):
        fp = RequestFingerprint.from_dict({
            'id': 7,
            'method': 'GET',
            'pathname': '/api/weather',
            'queryKeys': ['city'],
            'responseMime': 'application/json',
            'responseSize': 900
        })

        assert fp.id == '7'
        assert fp.query_keys == ('city',)
        assert fp.response_size == 900
        assert fp.body_preview is None

    def test_from_dict_coerces_field_types(self):
        """Test that scalar fields of the wrong type become strings."""
        fp = RequestFingerprint.from_dict({
            'id': 3,
            'method': 7,
            'pathname': 404,
            'queryKeys': [1, 'city', None, {'name': 'x'}],
            'responseMime': 12,
            'responseSize': '900',
            'bodyPreview': 5
        })

        assert fp.method == '7'
        assert fp.pathname == '404'
        assert fp.query_keys == ('city',)
        assert fp.response_mime == '12'
        assert fp.response_size == 900
        assert fp.body_preview == '5'

    def test_query_keys_string_is_one_key(self):
        fp = RequestFingerprint.from_dict({'id': '1', 'pathname': '/w', 'queryKeys': 'city'})
        assert fp.query_keys == ('city',)

    def test_container_fields_become_empty(self):
        fp = RequestFingerprint.from_dict({
            'id': '1', 'method': ['GET'], 'pathname': {'p': 1}, 'queryKeys': {'city': 1}
        })

        assert fp.method == 'GET'
        assert fp.pathname == ''
        assert fp.query_keys == ()

    def test_to_dict_omits_missing_body(self):
        fp = RequestFingerprint(id='1', method='GET', pathname='/a')
        assert 'bodyPreview' not in fp.to_dict()

    def test_round_trip(self):
        data = {
            'id': '3',
            'method': 'POST',
            'pathname': '/graphql',
            'queryKeys': [],
            'responseMime': 'application/json',
            'responseSize': 42,
            'bodyPreview': '{"query": "{ me }"}'
        }
        assert RequestFingerprint.from_dict(data).to_dict() == data

    def test_fingerprint_is_immutable(self):
        fp = RequestFingerprint(id='1', method='GET', pathname='/a')
        with pytest.raises(AttributeError):
            fp.method = 'POST'


class TestExtractFingerprints:
    """Test extract_fingerprints."""

    def test_har_document(self, post_entry):
        """Test ids, paths, query keys and body preview."""
        har = {'log': {'entries': [
            {'request': {'method': 'GET', 'url': 'https://cdn.example.com/app.js'},
             'response': {'content': {'mimeType': 'application/javascript', 'size': 5000}}},
            post_entry,
        ]}}

        fingerprints = extract_fingerprints(har)

        assert [fp.id for fp in fingerprints] == ['0', '1']
        assert fingerprints[0].pathname == '/app.js'
        assert fingerprints[0].body_preview is None
        assert fingerprints[1].method == 'post'
        assert fingerprints[1].pathname == '/v1/search'
        assert fingerprints[1].query_keys == ('lang', 'page')
        assert fingerprints[1].response_mime == 'application/json; charset=utf-8'
        assert fingerprints[1].body_preview == '{"q": "jokes"}'

    def test_body_preview_truncated(self):
        body = 'x' * (BODY_PREVIEW_LIMIT + 100)
        har = {'log': {'entries': [{'request': {'url': 'https://a.com/', 'postData': {'text': body}}}]}}

        fp = extract_fingerprints(har)[0]

        assert len(fp.body_preview) == BODY_PREVIEW_LIMIT

    def test_malformed_url_keeps_raw_string(self):
        har = {'log': {'entries': [{'request': {'url': 'not a url'}}]}}
        assert extract_fingerprints(har)[0].pathname == 'not a url'

    def test_bare_list(self, post_entry):
        assert len(extract_fingerprints([post_entry, post_entry])) == 2

    def test_missing_entries(self):
        assert extract_fingerprints({}) == []
        assert extract_fingerprints({'log': {}}) == []
        assert extract_fingerprints(None) == []
