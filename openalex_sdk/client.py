"""
The public client: one lookup and one search method per entity kind, plus autocomplete and ngrams.

Usage:
    with OpenAlex(email='someone@example.edu') as oa:
        page = oa.works(SearchRequest(query='education', search_field='title', per_page=50, page=2))
        found = oa.work('10.7717/peerj.4375', external_id='doi')
        report = oa.works_in_chunks(SearchRequest(drain_all=True, chunk_size=1000, export_csv='out/works'))
"""

import dataclasses
import logging

import httpx

from openalex_sdk.abstracts import convert_work_abstract
from openalex_sdk.config import EXTERNAL_ID_NAMESPACES, ClientConfig
from openalex_sdk.errors import TransportError, ValidationError
from openalex_sdk.export import ExportSink
from openalex_sdk.models import ChunkedExport, Found, Lookup, NotFound, Page, SearchRequest
from openalex_sdk.pagination import CursorResolver, PageCallback, PageFetcher, PaginationDriver, ResultTransform
from openalex_sdk.transport import ApiClient, build_http_client
from openalex_sdk.urls import UrlBuilder
from openalex_sdk.validation import validate_request

log = logging.getLogger(__name__)


def placeholder_entity(collection: str, entity_id: str) -> dict[str, object]:
    """
    Builds the stand-in returned for a 404 lookup: the requested id and empty collections.
    """
    entity: dict[str, object] = {'id': entity_id, 'counts_by_year': []}
    if collection == 'works':
        entity['biblio'] = {}
    return entity


class OpenAlex:
    """
    Wires the url builder, cursor resolver, page fetcher and pagination driver together per entity kind.
    - Holds one immutable ClientConfig; concurrent calls share nothing else.
    - Searches return a Page (single page, page window, or full drain), exported when asked.
    - `*_in_chunks()` searches drain to disk chunk by chunk and return a ChunkedExport, never results.
    - Lookups return Found or NotFound; NotFound carries a placeholder entity instead of raising.
    """

    def __init__(
        self,
        email: str | None = None,
        api_key: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
        sink: ExportSink | None = None,
    ) -> None:
        config = config if config is not None else ClientConfig()
        if email is not None or api_key is not None:
            config = dataclasses.replace(
                config,
                email=email if email is not None else config.email,
                api_key=api_key if api_key is not None else config.api_key,
            )
        self.config: ClientConfig = config
        self._owns_http_client: bool = http_client is None
        self.http_client: httpx.Client = http_client if http_client is not None else build_http_client(config)
        self.api = ApiClient(self.http_client, config)
        self.urls = UrlBuilder(config.base_url)
        self.fetcher = PageFetcher(self.api)
        self.resolver = CursorResolver(self.fetcher)
        self.driver = PaginationDriver(self.fetcher, self.resolver)
        self.sink: ExportSink = sink if sink is not None else ExportSink()

    def close(self) -> None:
        if self._owns_http_client:
            self.http_client.close()

    def __enter__(self) -> 'OpenAlex':
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    ## works --------------------------------------------------------

    def work(self, work_id: str, external_id: str | None = None) -> Lookup:
        return self._lookup('works', work_id, external_id)

    def works(self, request: SearchRequest | None = None, *, on_page: PageCallback | None = None) -> Page:
        return self._search('works', request or SearchRequest(), on_page=on_page)

    def works_in_chunks(self, request: SearchRequest, *, on_page: PageCallback | None = None) -> ChunkedExport:
        return self._search_in_chunks('works', request, on_page=on_page)

    def autocomplete_works(self, query: str) -> Page:
        return self.autocomplete('works', query)

    def ngram(self, work_id: str) -> dict[str, object]:
        """
        Returns the n-grams payload for one work.
        """
        return self._get_json(self.urls.ngram_url(work_id))

    ## authors ------------------------------------------------------

    def author(self, author_id: str, external_id: str | None = None) -> Lookup:
        return self._lookup('authors', author_id, external_id)

    def authors(self, request: SearchRequest | None = None, *, on_page: PageCallback | None = None) -> Page:
        return self._search('authors', request or SearchRequest(), on_page=on_page)

    def authors_in_chunks(self, request: SearchRequest, *, on_page: PageCallback | None = None) -> ChunkedExport:
        return self._search_in_chunks('authors', request, on_page=on_page)

    ## sources ------------------------------------------------------

    def source(self, source_id: str, external_id: str | None = None) -> Lookup:
        return self._lookup('sources', source_id, external_id)

    def sources(self, request: SearchRequest | None = None, *, on_page: PageCallback | None = None) -> Page:
        return self._search('sources', request or SearchRequest(), on_page=on_page)

    def sources_in_chunks(self, request: SearchRequest, *, on_page: PageCallback | None = None) -> ChunkedExport:
        return self._search_in_chunks('sources', request, on_page=on_page)

    ## institutions -------------------------------------------------

    def institution(self, institution_id: str, external_id: str | None = None) -> Lookup:
        return self._lookup('institutions', institution_id, external_id)

    def institutions(self, request: SearchRequest | None = None, *, on_page: PageCallback | None = None) -> Page:
        return self._search('institutions', request or SearchRequest(), on_page=on_page)

    def institutions_in_chunks(self, request: SearchRequest, *, on_page: PageCallback | None = None) -> ChunkedExport:
        return self._search_in_chunks('institutions', request, on_page=on_page)

    ## topics -------------------------------------------------------

    def topic(self, topic_id: str) -> Lookup:
        return self._lookup('topics', topic_id, None)

    def topics(self, request: SearchRequest | None = None, *, on_page: PageCallback | None = None) -> Page:
        return self._search('topics', request or SearchRequest(), on_page=on_page)

    def topics_in_chunks(self, request: SearchRequest, *, on_page: PageCallback | None = None) -> ChunkedExport:
        return self._search_in_chunks('topics', request, on_page=on_page)

    ## shared -------------------------------------------------------

    def autocomplete(self, collection: str, query: str) -> Page:
        url: str = self.urls.autocomplete_url(collection, query)
        return Page.from_json(self._get_json(url), url)

    def _lookup(self, collection: str, entity_id: str, external_id: str | None) -> Lookup:
        """
        GETs one entity. A 404 becomes NotFound with a placeholder; other failures raise TransportError.
        """
        if not entity_id:
            raise ValidationError(f'an id is required to look up {collection}')
        if external_id is not None and external_id not in EXTERNAL_ID_NAMESPACES[collection]:
            allowed: str = ', '.join(EXTERNAL_ID_NAMESPACES[collection]) or 'none'
            raise ValidationError(f'`{external_id}` is not an external id for {collection}; use one of: {allowed}')
        url: str = self.urls.entity_url(collection, entity_id, external_id)
        resp: httpx.Response = self.api.get_with_retries(url)
        if resp.status_code == 404:
            log.info(f'{collection} entity ``{entity_id}`` not found')
            return NotFound(id=entity_id, entity=placeholder_entity(collection, entity_id))
        if not resp.is_success:
            raise TransportError(resp.status_code, resp.reason_phrase, url)
        return Found(entity=resp.json())

    def _search(self, collection: str, request: SearchRequest, *, on_page: PageCallback | None = None) -> Page:
        """
        Validates, builds the url, runs the selected traversal mode, then exports the combined page if asked.
        """
        validate_request(collection, request)
        url: str = self._collection_url(collection, request)
        transform: ResultTransform | None = convert_work_abstract if request.abstract_to_text else None
        if request.is_window:
            page: Page = self.driver.window(
                url,
                request.per_page,
                request.start_page,  # type: ignore[arg-type]
                request.end_page,  # type: ignore[arg-type]
                transform=transform,
                on_page=on_page,
            )
        elif request.drain_all:
            page = self.driver.drain(url, transform=transform, on_page=on_page)
        else:
            page = self.driver.single_page(url, request.per_page, request.page, transform=transform, on_page=on_page)
        self.sink.export_page(page, request.export_json, request.export_csv)
        return page

    def _search_in_chunks(
        self, collection: str, request: SearchRequest, *, on_page: PageCallback | None = None
    ) -> ChunkedExport:
        validate_request(collection, request, chunked=True)
        url: str = self._collection_url(collection, request)
        transform: ResultTransform | None = convert_work_abstract if request.abstract_to_text else None
        return self.driver.drain_in_chunks(
            url,
            request.chunk_size,  # type: ignore[arg-type]
            self.sink,
            request.export_json,
            request.export_csv,
            transform=transform,
            on_page=on_page,
        )

    def _collection_url(self, collection: str, request: SearchRequest) -> str:
        return self.urls.collection_url(
            collection,
            query=request.query,
            search_field=request.search_field,
            filter_map=request.filter,
            group_by=request.group_by,
            sort_by=request.sort_by,
        )

    def _get_json(self, url: str) -> dict[str, object]:
        resp: httpx.Response = self.api.get_with_retries(url)
        if not resp.is_success:
            raise TransportError(resp.status_code, resp.reason_phrase, url)
        return resp.json()
