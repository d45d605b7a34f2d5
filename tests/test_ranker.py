"""
Tests for the HarScout ranker.
"""

import pytest

from harscout.analyze.fingerprint import RequestFingerprint, TraceEntry, extract_fingerprints
from harscout.analyze.ranker import DEFAULT_TOP_N, HarRanker
from harscout.analyze.scorer import shape_from_fingerprint


def make_fp(id, pathname, method='GET', query_keys=(), mime='application/json', size=900, body=None):
    return RequestFingerprint(
        id=str(id), method=method, pathname=pathname, query_keys=tuple(query_keys),
        response_mime=mime, response_size=size, body_preview=body
    )


@pytest.fixture
def ranker():
    return HarRanker()


@pytest.fixture
def weather_trace():
    """Weather API call surrounded by static assets and a tracking beacon."""
    return [
        make_fp(0, '/static/app.js', mime='application/javascript', size=5000),
        make_fp(1, '/api/v2/weather', query_keys=['city']),
        make_fp(2, '/index.html', mime='text/html', size=20000),
        make_fp(3, '/api/track', method='POST', size=20),
        make_fp(4, '/images/logo.svg', mime='image/svg+xml', size=2000),
    ]


class TestHarRanker:
    """Test suite for HarRanker."""

    def test_weather_ranks_first(self, ranker, weather_trace):
        ranked = ranker.rank_fingerprints(weather_trace, 'weather for a city')

        assert [fp.id for fp in ranked] == ['1', '3']

    def test_static_assets_never_ranked(self, ranker, weather_trace):
        for description in ('', 'app javascript', 'index html', 'logo images'):
            ids = {fp.id for fp in ranker.rank_fingerprints(weather_trace, description)}
            assert not ids & {'0', '2', '4'}

    def test_empty_input(self, ranker):
        assert ranker.rank_fingerprints([], 'anything') == []

    def test_at_most_top_n(self, ranker):
        fingerprints = [make_fp(i, f'/api/items/{i}') for i in range(DEFAULT_TOP_N + 10)]

        ranked = ranker.rank_fingerprints(fingerprints, 'items')

        assert len(ranked) == DEFAULT_TOP_N

    def test_custom_top_n(self):
        fingerprints = [make_fp(i, f'/api/items/{i}') for i in range(10)]
        assert len(HarRanker(top_n=3).rank_fingerprints(fingerprints, 'items')) == 3

    def test_scores_descending(self, ranker):
        fingerprints = [
            make_fp(0, '/misc', mime='text/plain', size=100),
            make_fp(1, '/api/users', size=900),
            make_fp(2, '/api/users', method='POST', size=6000),
            make_fp(3, '/other', size=100),
        ]

        pairs = ranker.scored(fingerprints, 'list users', shape_from_fingerprint)
        scores = [score for _, score in pairs]

        assert scores == sorted(scores, reverse=True)
        assert all(score > 0 for score in scores)

    def test_zero_scores_dropped(self, ranker):
        fingerprints = [make_fp(0, '/misc', mime='text/plain', size=100)]
        assert ranker.rank_fingerprints(fingerprints, 'weather') == []

    def test_ties_keep_input_order(self, ranker):
        """Test that equal scores keep their input order."""
        fingerprints = [make_fp(i, '/api/items') for i in range(5)]

        ranked = ranker.rank_fingerprints(fingerprints, 'items')

        assert [fp.id for fp in ranked] == ['0', '1', '2', '3', '4']

    def test_blank_description_uses_bonuses_only(self, ranker):
        fingerprints = [
            make_fp(0, '/api/other', size=1000),
            make_fp(1, '/api/items', method='POST', size=1000),
        ]

        ranked = ranker.rank_fingerprints(fingerprints, '   ')

        assert [fp.id for fp in ranked] == ['1', '0']
        assert ranker.score_fingerprint(fingerprints[1], '') == 10
        assert ranker.score_fingerprint(fingerprints[0], '') == 8

    def test_score_fingerprint(self, ranker, weather_trace):
        assert ranker.score_fingerprint(weather_trace[1], 'weather for a city') == 17
        assert ranker.score_fingerprint(weather_trace[0], 'weather for a city') == 0

    def test_rank_entries(self, ranker):
        """Test ranking raw trace entries."""
        raw = [
            {'request': {'method': 'GET', 'url': 'https://example.com/main.css'},
             'response': {'content': {'mimeType': 'text/css', 'size': 3000}}},
            {'request': {'method': 'GET', 'url': 'https://example.com/api/jokes?topic=cats',
                         'queryString': [{'name': 'topic', 'value': 'cats'}]},
             'response': {'content': {'mimeType': 'application/json', 'size': 700}}},
            {'response': {'content': {'mimeType': 'application/json', 'size': 700}}},
        ]
        entries = [TraceEntry.from_dict(e) for e in raw]

        ranked = ranker.rank_entries(entries, 'jokes by topic')

        assert ranked[0].raw is raw[1]
        assert entries[0] not in ranked

    def test_non_string_description_scores_as_blank(self, ranker):
        fingerprints = [make_fp(0, '/api/other'), make_fp(1, '/api/items', method='POST')]

        ranked = ranker.rank_fingerprints(fingerprints, 42)

        assert ranked == ranker.rank_fingerprints(fingerprints, '')


class TestWeatherAmongDecoys:
    """A single weather call hidden among ten static decoys in a recorded HAR."""

    @pytest.fixture
    def har(self):
        decoys = []
        for i in range(10):
            if i % 2:
                url, mime = f'https://www.example.com/static/style{i}.css', 'text/css'
            else:
                url, mime = f'https://www.example.com/static/app{i}.js', 'application/javascript'
            decoys.append({
                'request': {'method': 'GET', 'url': url},
                'response': {'content': {'mimeType': mime, 'size': 15000}}
            })

        weather = {
            'request': {
                'method': 'GET',
                'url': 'https://api.example.com/api/v2/weather?city=SF',
                'queryString': [{'name': 'city', 'value': 'SF'}]
            },
            'response': {'content': {'mimeType': 'application/json', 'size': 900}}
        }
        return {'log': {'entries': decoys[:6] + [weather] + decoys[6:]}}

    def test_weather_is_the_only_candidate(self, ranker, har):
        fingerprints = extract_fingerprints(har)

        ranked = ranker.rank_fingerprints(fingerprints, 'weather for a city')

        assert [fp.id for fp in ranked] == ['6']
        assert ranked[0].pathname == '/api/v2/weather'
        assert ranked[0].query_keys == ('city',)

    def test_decoys_score_zero(self, ranker, har):
        fingerprints = extract_fingerprints(har)
        decoys = [fp for fp in fingerprints if fp.id != '6']

        assert len(decoys) == 10
        for fp in decoys:
            assert ranker.score_fingerprint(fp, 'weather for a city') == 0
        assert ranker.score_fingerprint(fingerprints[6], 'weather for a city') > 0
