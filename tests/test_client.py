import csv
import json
import tempfile
import unittest
from pathlib import Path

import httpx

from fake_api import FakeCollection, ids, make_client
from openalex_sdk.errors import TransportError, ValidationError
from openalex_sdk.models import ChunkedExport, Found, NotFound, Page, SearchRequest, SortBy


class TestValidation(unittest.TestCase):
    """
    Checks that conflicting requests are rejected before any request is made.
    """

    def setUp(self) -> None:
        self.fake = FakeCollection(total=50)
        self.client = make_client(self.fake.handler)

    def assert_rejected(self, request: SearchRequest, method: str = 'works') -> None:
        with self.assertRaises(ValidationError):
            getattr(self.client, method)(request)
        self.assertEqual(self.fake.requests, [])

    def test_window_with_drain_all(self) -> None:
        self.assert_rejected(SearchRequest(start_page=1, end_page=3, drain_all=True))

    def test_start_page_without_end_page(self) -> None:
        self.assert_rejected(SearchRequest(start_page=2))
        self.assert_rejected(SearchRequest(end_page=2), 'authors')

    def test_end_before_start(self) -> None:
        self.assert_rejected(SearchRequest(start_page=3, end_page=2))

    def test_search_field_without_query(self) -> None:
        self.assert_rejected(SearchRequest(search_field='title'))

    def test_search_field_not_searchable(self) -> None:
        self.assert_rejected(SearchRequest(query='x', search_field='fulltext'), 'institutions')

    def test_per_page_bounds(self) -> None:
        self.assert_rejected(SearchRequest(per_page=0))
        self.assert_rejected(SearchRequest(per_page=201))

    def test_chunk_size_rules(self) -> None:
        self.assert_rejected(SearchRequest(chunk_size=10, export_json='x'), 'works_in_chunks')
        self.assert_rejected(SearchRequest(drain_all=True, chunk_size=10), 'works_in_chunks')
        self.assert_rejected(SearchRequest(drain_all=True, chunk_size=0, export_csv='x'), 'works_in_chunks')
        self.assert_rejected(SearchRequest(drain_all=True, export_csv='x'), 'works_in_chunks')
        ## the result-returning search refuses a chunked request
        self.assert_rejected(SearchRequest(drain_all=True, chunk_size=10, export_csv='x'))

    def test_abstract_to_text_is_works_only(self) -> None:
        self.assert_rejected(SearchRequest(abstract_to_text=True), 'authors')


class TestSearch(unittest.TestCase):
    """
    Tests the search facades end to end against the fake collection.
    """

    def test_single_page_by_number(self) -> None:
        fake = FakeCollection(total=50)
        client = make_client(fake.handler)
        page: Page = client.works(SearchRequest(per_page=10, page=3, filter={'is_oa': True}))
        self.assertEqual(ids(page.results), [f'W{i}' for i in range(20, 30)])
        self.assertEqual(page.meta.page, 3)
        self.assertEqual(len(fake.requests), 3)
        self.assertEqual(fake.requests[0].url.params['filter'], 'is_oa:true')
        self.assertEqual(fake.requests[0].url.path, '/works')

    def test_each_kind_hits_its_collection(self) -> None:
        fake = FakeCollection(total=3)
        client = make_client(fake.handler)
        for kind in ('works', 'authors', 'sources', 'institutions', 'topics'):
            page: Page = getattr(client, kind)()
            self.assertEqual(len(page.results), 3)
        paths: list[str] = [r.url.path for r in fake.requests]
        self.assertEqual(paths, ['/works', '/authors', '/sources', '/institutions', '/topics'])

    def test_search_params_reach_the_api(self) -> None:
        fake = FakeCollection(total=3)
        client = make_client(fake.handler)
        client.works(
            SearchRequest(
                query='education',
                search_field='title',
                group_by='publication_year',
                sort_by=SortBy('display_name', 'desc'),
            )
        )
        params: httpx.QueryParams = fake.requests[0].url.params
        self.assertEqual(params['filter'], 'title.search:education')
        self.assertEqual(params['group_by'], 'publication_year')
        self.assertEqual(params['sort'], 'display_name:desc')
        self.assertNotIn('search', params)

    def test_window_via_facade(self) -> None:
        fake = FakeCollection(total=50)
        client = make_client(fake.handler)
        page: Page = client.sources(SearchRequest(per_page=10, start_page=2, end_page=4))
        self.assertEqual(ids(page.results), [f'W{i}' for i in range(10, 40)])

    def test_drain_all_via_facade(self) -> None:
        fake = FakeCollection(total=410)
        client = make_client(fake.handler)
        page: Page = client.authors(SearchRequest(drain_all=True, per_page=5))
        self.assertEqual(len(page.results), 410)
        self.assertEqual(page.meta.count, 410)

    def test_chunked_via_facade_returns_no_results(self) -> None:
        fake = FakeCollection(total=250)
        with tempfile.TemporaryDirectory() as tmp:
            client = make_client(fake.handler, out_dir=Path(tmp))
            report: ChunkedExport = client.topics_in_chunks(
                SearchRequest(drain_all=True, chunk_size=100, export_json='topics', export_csv='topics')
            )
            self.assertIsInstance(report, ChunkedExport)
            self.assertEqual(report.chunk_count, 3)
            self.assertEqual(len(report.files), 6)
            self.assertTrue((Path(tmp) / 'topics_3.csv').exists())

    def test_transport_error_surfaces(self) -> None:
        client = make_client(lambda request: httpx.Response(503), max_retries=0)
        with self.assertRaises(TransportError) as ctx:
            client.works()
        self.assertEqual(ctx.exception.status_code, 503)

    def test_export_single_page(self) -> None:
        fake = FakeCollection(total=3)
        with tempfile.TemporaryDirectory() as tmp:
            client = make_client(fake.handler, out_dir=Path(tmp))
            client.works(SearchRequest(export_json='page', export_csv='page'))
            with (Path(tmp) / 'page.json').open(encoding='utf-8') as fh:
                data: dict = json.load(fh)
            self.assertEqual(ids(data['results']), ['W0', 'W1', 'W2'])
            self.assertEqual(data['meta']['count'], 3)
            with (Path(tmp) / 'page.csv').open(encoding='utf-8', newline='') as fh:
                rows: list[dict] = list(csv.DictReader(fh))
            self.assertEqual([row['id'] for row in rows], ['W0', 'W1', 'W2'])


class TestWorksAbstracts(unittest.TestCase):
    """
    Tests the works-only abstract conversion through the facade.
    """

    def test_abstracts_become_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    'meta': {'count': 2, 'page': 1, 'per_page': 25, 'next_cursor': None},
                    'results': [
                        {'id': 'W1', 'abstract_inverted_index': {'world': [1], 'hello': [0]}},
                        {'id': 'W2', 'abstract_inverted_index': None},
                    ],
                },
            )

        client = make_client(handler)
        page: Page = client.works(SearchRequest(abstract_to_text=True))
        self.assertEqual(page.results[0], {'id': 'W1', 'abstract': 'hello world'})
        self.assertEqual(page.results[1], {'id': 'W2'})


class TestLookups(unittest.TestCase):
    """
    Tests single-entity lookups, autocomplete and ngrams.
    """

    def test_found(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={'id': 'https://openalex.org/A1'}))
        result = client.author('A1')
        self.assertIsInstance(result, Found)
        self.assertTrue(result.found)
        self.assertEqual(result.entity['id'], 'https://openalex.org/A1')

    def test_not_found_gives_placeholder(self) -> None:
        client = make_client(lambda request: httpx.Response(404))
        result = client.work('W404')
        self.assertIsInstance(result, NotFound)
        self.assertFalse(result.found)
        self.assertEqual(result.entity, {'id': 'W404', 'biblio': {}, 'counts_by_year': []})
        institution = client.institution('I404')
        self.assertEqual(institution.entity, {'id': 'I404', 'counts_by_year': []})

    def test_other_errors_raise(self) -> None:
        client = make_client(lambda request: httpx.Response(401), max_retries=0)
        with self.assertRaises(TransportError) as ctx:
            client.source('S1')
        self.assertEqual(ctx.exception.status_code, 401)

    def test_external_id_url(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={'id': 'W1'})

        client = make_client(handler)
        client.work('14907713', external_id='pmid')
        client.institution('02y3ad647', external_id='ror')
        self.assertEqual(seen, ['/works/pmid:14907713', '/institutions/ror:02y3ad647'])

    def test_bad_external_namespace(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={}))
        with self.assertRaises(ValidationError):
            client.author('X', external_id='ror')

    def test_topic_requires_id(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={}))
        with self.assertRaises(ValidationError):
            client.topic('')

    def test_autocomplete_and_ngram(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == '/autocomplete/works':
                self.assertEqual(request.url.params['q'], 'tigers')
                return httpx.Response(200, json={'meta': {'count': 1}, 'results': [{'id': 'W9'}]})
            self.assertEqual(request.url.path, '/works/W9/ngram')
            return httpx.Response(200, json={'meta': {'count': 1}, 'ngrams': [{'ngram': 'tigers'}]})

        client = make_client(handler)
        self.assertEqual(ids(client.autocomplete_works('tigers').results), ['W9'])
        self.assertEqual(client.ngram('W9')['ngrams'], [{'ngram': 'tigers'}])


if __name__ == '__main__':
    unittest.main()
