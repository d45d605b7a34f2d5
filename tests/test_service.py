"""
Tests for the analyze service facade.

Tests the result objects returned for every operation, including the
error strings callers see, and the activity metrics.
"""

from unittest.mock import Mock, patch

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from harscout.analyze.executor import ExecutionResult, RequestExecutor
from harscout.analyze.fingerprint import RequestFingerprint, TraceEntry, extract_fingerprints
from harscout.analyze.service import (
    CURL_FAILED_ERROR,
    INVALID_ENTRY_ERROR,
    SESSION_NOT_FOUND_ERROR,
    SESSION_NOT_INITIALIZED_ERROR,
    AnalyzeService,
)
from harscout.analyze.session import NO_MATCH_ERROR


@pytest.fixture
def har_entries():
    """Small trace: a page, a stylesheet, the weather API and an analytics POST."""
    return [
        {'request': {'method': 'GET', 'url': 'https://weather.example.com/'},
         'response': {'content': {'mimeType': 'text/html', 'size': 30000}}},
        {'request': {'method': 'GET', 'url': 'https://weather.example.com/main.css'},
         'response': {'content': {'mimeType': 'text/css', 'size': 8000}}},
        {'request': {'method': 'GET',
                     'url': 'https://api.weather.example.com/api/v2/weather?city=Paris',
                     'headers': [{'name': 'Accept', 'value': 'application/json'}],
                     'queryString': [{'name': 'city', 'value': 'Paris'}]},
         'response': {'content': {'mimeType': 'application/json', 'size': 900}}},
        {'request': {'method': 'POST', 'url': 'https://stats.example.com/collect',
                     'postData': {'text': 'e=pageview'}},
         'response': {'content': {'mimeType': 'text/plain', 'size': 2}}},
    ]


@pytest.fixture
def service():
    return AnalyzeService()


class TestOneShot:
    """Test stateless ranking."""

    def test_rank_one_shot(self, service, har_entries):
        ranked = service.rank_one_shot(extract_fingerprints(har_entries), 'weather for a city')
        assert [fp.id for fp in ranked] == ['2']

    def test_run(self, service, har_entries):
        result = service.run(extract_fingerprints(har_entries), 'weather for a city')

        assert result.request_id == '2'
        assert result.candidates == 1

    def test_run_no_match(self, service, har_entries):
        result = service.run(extract_fingerprints(har_entries[:2]), 'weather')

        assert result.request_id is None
        assert result.error == NO_MATCH_ERROR


class TestStreaming:
    """Test the streaming session workflow through the service."""

    def test_full_workflow(self, service, har_entries):
        fingerprints = extract_fingerprints(har_entries)

        service.init_session('abc', 'weather for a city')
        assert service.submit_chunk('abc', fingerprints[:2]).success
        assert service.submit_chunk('abc', fingerprints[2:]).success
        result = service.finalize_session('abc')

        assert result.to_dict() == {'requestId': '2'}
        assert 'abc' not in service.store

    def test_chunk_before_init(self, service):
        result = service.submit_chunk('nope', [])

        assert result.success is False
        assert result.error == SESSION_NOT_INITIALIZED_ERROR
        assert result.error_kind == 'session_not_found'

    def test_finalize_unknown(self, service):
        result = service.finalize_session('nope')

        assert result.to_dict() == {'requestId': None, 'error': SESSION_NOT_FOUND_ERROR}
        assert result.error_kind == 'session_not_found'

    def test_finalize_with_claude(self, har_entries):
        disambiguator = Mock()
        disambiguator.choose.return_value = 1
        service = AnalyzeService(disambiguator=disambiguator)
        fingerprints = [
            RequestFingerprint(id='0', method='GET', pathname='/api/forecast', response_mime='application/json',
                               response_size=900),
            RequestFingerprint(id='1', method='GET', pathname='/api/weather', response_mime='application/json',
                               response_size=900),
        ]

        service.init_session('s', 'weather forecast')
        service.submit_chunk('s', fingerprints)

        assert service.finalize_session('s').request_id == '1'

    def test_cleanup(self, service):
        service.init_session('s', 'x')
        service.cleanup_session('s')
        service.cleanup_session('s')

        assert service.submit_chunk('s', []).error == SESSION_NOT_INITIALIZED_ERROR


class TestSynthesizeCommand:
    """Test curl synthesis through the service."""

    def test_raw_entry(self, service, har_entries):
        result = service.synthesize_command(har_entries[2])

        assert result.curl == (
            "curl 'https://api.weather.example.com/api/v2/weather?city=Paris' \\\n"
            "  -H 'Accept: application/json'"
        )
        assert result.request is har_entries[2]
        assert result.error is None

    def test_trace_entry(self, service, har_entries):
        result = service.synthesize_command(TraceEntry.from_dict(har_entries[3]))
        assert result.curl.endswith("--data-raw 'e=pageview'")

    @pytest.mark.parametrize('entry', [None, {}, {'request': None}, {'response': {}}, 'entry'])
    def test_invalid_entry(self, service, entry):
        result = service.synthesize_command(entry)

        assert result.curl is None
        assert result.error == INVALID_ENTRY_ERROR
        assert result.error_kind == 'invalid_entry'

    def test_generation_failure(self, service, har_entries):
        with patch('harscout.analyze.service.CurlGenerator.from_entry', side_effect=RuntimeError('boom')):
            result = service.synthesize_command(har_entries[2])

        assert result.curl is None
        assert result.error == CURL_FAILED_ERROR


class TestExecuteAndMetrics:
    """Test execution pass-through and metrics."""

    def test_execute_request(self):
        executor = Mock(spec=RequestExecutor)
        executor.execute.return_value = ExecutionResult(status=200, status_text='OK', body='{}')
        service = AnalyzeService(executor=executor)

        result = service.execute_request('GET', 'https://a.com/x', {'A': '1'})

        assert result.status == 200
        executor.execute.assert_called_once_with('GET', 'https://a.com/x', {'A': '1'}, None)

    def test_execute_synthesized_curl(self):
        """Test that a synthesized command replays the recorded request."""
        session = Mock(spec=requests.Session)
        session.request.return_value = Mock(
            status_code=200, reason='OK', headers=CaseInsensitiveDict(), text='done'
        )
        service = AnalyzeService(executor=RequestExecutor(timeout=5, session=session))
        entry = {
            'request': {
                'method': 'PUT',
                'url': 'https://api.example.com/items/9',
                'headers': [{'name': 'Content-Type', 'value': 'application/json'}],
                'postData': {'text': '{"name": "it\'s"}'}
            }
        }

        result = service.execute_curl(service.synthesize_command(entry).curl)

        assert result.body == 'done'
        session.request.assert_called_once_with(
            method='PUT',
            url='https://api.example.com/items/9',
            headers={'Content-Type': 'application/json'},
            data='{"name": "it\'s"}'.encode('utf-8'),
            timeout=5,
            verify=True
        )

    def test_metrics(self, service, har_entries):
        fingerprints = extract_fingerprints(har_entries)

        service.init_session('a', 'weather for a city')
        service.submit_chunk('a', fingerprints)
        service.finalize_session('a')
        service.init_session('b', 'nothing here')
        service.submit_chunk('b', fingerprints[:2])
        service.finalize_session('b')
        service.init_session('c', 'open')
        service.synthesize_command(har_entries[0])

        metrics = service.metrics_snapshot()

        assert metrics['sessions_started'] == 3
        assert metrics['sessions_active'] == 1
        assert metrics['chunks_processed'] == 2
        assert metrics['items_processed'] == 6
        assert metrics['sessions_finalized'] == 2
        assert metrics['match_rate'] == 50.0
        assert metrics['commands_generated'] == 1
