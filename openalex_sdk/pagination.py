"""
Cursor pagination: fetching one page, replaying pages to reach a page number, and the three traversal modes.

The API only hands out forward cursors, so every page after the first depends on the response before it.
Requests are therefore strictly sequential, one in flight at a time.
"""

import logging
from collections.abc import Callable, Iterator

import httpx

from openalex_sdk.config import MAX_PER_PAGE, START_CURSOR
from openalex_sdk.errors import TransportError
from openalex_sdk.export import ExportSink
from openalex_sdk.models import ChunkedExport, Page, PageMeta, ResolvedCursor
from openalex_sdk.transport import ApiClient
from openalex_sdk.urls import UrlBuilder

log = logging.getLogger(__name__)

ResultTransform = Callable[[dict[str, object]], dict[str, object]]
PageCallback = Callable[[Page], None]


class PageFetcher:
    """
    Issues one paginated GET and classifies the response.
    - 2xx: parses the page.
    - 404: returns an empty terminal page; the API uses 404 for "no more results" on some paths.
    - anything else: raises TransportError with the status code and reason.
    Retries happen below this layer, in ApiClient.
    """

    def __init__(self, api: ApiClient) -> None:
        self.api: ApiClient = api

    def fetch(self, url: str, per_page: int, cursor: str) -> Page:
        page_url: str = UrlBuilder.with_pagination(url, per_page, cursor)
        log.debug(f'fetching page url, ``{page_url}``')
        resp: httpx.Response = self.api.get_with_retries(page_url)
        if resp.status_code == 404:
            log.info(f'404 for page url, ``{page_url}``; treating as an empty terminal page')
            return Page.empty(page_url, per_page=per_page)
        if not resp.is_success:
            raise TransportError(resp.status_code, resp.reason_phrase, page_url)
        return Page.from_json(resp.json(), page_url)


class CursorResolver:
    """
    Turns a page number into the cursor that lands on it.
    """

    def __init__(self, fetcher: PageFetcher) -> None:
        self.fetcher: PageFetcher = fetcher

    def resolve(self, url: str, target_page: int, per_page: int) -> ResolvedCursor:
        """
        Replays pages 1..target_page-1 and returns the cursor for `target_page`.

        Cost: `target_page - 1` sequential requests (none for page 1), each fetching a full page whose
        results are thrown away. The cursor is only valid for this `url` and `per_page`.

        When the collection ends first, returns the last cursor seen with `exhausted=True` rather than raising.
        Called by: PaginationDriver.single_page() and PaginationDriver.window()
        """
        if target_page <= 1:
            return ResolvedCursor(START_CURSOR)
        cursor: str = START_CURSOR
        count: int | None = None
        for page_number in range(1, target_page):
            page: Page = self.fetcher.fetch(url, per_page, cursor)
            count = page.meta.count
            if page.meta.next_cursor is None:
                log.warning(f'collection ended at page {page_number}, before requested page {target_page}')
                return ResolvedCursor(cursor, exhausted=True, count=count)
            cursor = page.meta.next_cursor
        return ResolvedCursor(cursor, exhausted=False, count=count)


class PaginationDriver:
    """
    Runs the traversal modes over a built collection url.
    - `single_page()`: one page, reached by cursor replay.
    - `window()`: an inclusive range of pages, concatenated; stops early if the collection runs out.
    - `drain()`: every page at the maximum page size, held in memory and returned as one page.
    - `drain_in_chunks()`: every page, flushed to disk in fixed-size chunks; returns a summary, not results.
    Results keep the API's order. Errors from any fetch abort the traversal unchanged;
    chunks already flushed by `drain_in_chunks()` stay on disk.
    """

    def __init__(self, fetcher: PageFetcher, resolver: CursorResolver) -> None:
        self.fetcher: PageFetcher = fetcher
        self.resolver: CursorResolver = resolver

    def walk(
        self,
        url: str,
        per_page: int,
        cursor: str,
        *,
        max_pages: int | None = None,
        transform: ResultTransform | None = None,
        on_page: PageCallback | None = None,
    ) -> Iterator[Page]:
        """
        Yields pages from `cursor` onward until the next cursor is absent or `max_pages` have been yielded.
        """
        fetched: int = 0
        while True:
            page: Page = self.fetcher.fetch(url, per_page, cursor)
            if transform is not None:
                page.results = [transform(r) for r in page.results]
            fetched += 1
            if on_page is not None:
                on_page(page)
            yield page
            if page.meta.next_cursor is None:
                return
            if max_pages is not None and fetched >= max_pages:
                return
            cursor = page.meta.next_cursor

    def single_page(
        self,
        url: str,
        per_page: int,
        page_number: int,
        *,
        transform: ResultTransform | None = None,
        on_page: PageCallback | None = None,
    ) -> Page:
        resolved: ResolvedCursor = self.resolver.resolve(url, page_number, per_page)
        if resolved.exhausted:
            return self._past_the_end(url, per_page, page_number, resolved)
        page: Page = next(self.walk(url, per_page, resolved.cursor, max_pages=1, transform=transform, on_page=on_page))
        page.meta.page = page_number
        return page

    def window(
        self,
        url: str,
        per_page: int,
        start_page: int,
        end_page: int,
        *,
        transform: ResultTransform | None = None,
        on_page: PageCallback | None = None,
    ) -> Page:
        """
        Fetches pages `start_page`..`end_page` inclusive and concatenates their results.
        `meta.page` is `start_page`; `meta.count` and `meta.per_page` come from the first page fetched.
        A `start_page` past the end of the collection gives an empty page, not an error.
        """
        resolved: ResolvedCursor = self.resolver.resolve(url, start_page, per_page)
        if resolved.exhausted:
            return self._past_the_end(url, per_page, start_page, resolved)
        max_pages: int = end_page - start_page + 1
        pages: Iterator[Page] = self.walk(
            url, per_page, resolved.cursor, max_pages=max_pages, transform=transform, on_page=on_page
        )
        window: Page | None = None
        for page in pages:
            if window is None:
                window = Page(
                    results=[],
                    meta=PageMeta(count=page.meta.count, page=start_page, per_page=page.meta.per_page or per_page),
                    url=page.url,
                )
            window.results.extend(page.results)
            window.group_by.extend(page.group_by)
            window.meta.next_cursor = page.meta.next_cursor
        assert window is not None  # walk() always yields at least one page
        log.info(f'window {start_page}-{end_page} collected {len(window.results)} results')
        return window

    def drain(
        self,
        url: str,
        *,
        transform: ResultTransform | None = None,
        on_page: PageCallback | None = None,
    ) -> Page:
        """
        Fetches every page at the maximum page size and returns all results as one page.
        Memory grows with the collection; see `drain_in_chunks()` for the bounded alternative.
        """
        drained: Page | None = None
        for page in self.walk(url, MAX_PER_PAGE, START_CURSOR, transform=transform, on_page=on_page):
            if drained is None:
                drained = Page(
                    results=[],
                    meta=PageMeta(count=page.meta.count, page=1, per_page=page.meta.per_page or MAX_PER_PAGE),
                    url=page.url,
                )
            drained.results.extend(page.results)
            drained.group_by.extend(page.group_by)
        assert drained is not None
        log.info(f'drained {len(drained.results)} results')
        return drained

    def drain_in_chunks(
        self,
        url: str,
        chunk_size: int,
        sink: ExportSink,
        export_json: str | None,
        export_csv: str | None,
        *,
        transform: ResultTransform | None = None,
        on_page: PageCallback | None = None,
    ) -> ChunkedExport:
        """
        Fetches every page and flushes results to the sink every `chunk_size` results, then flushes the remainder.
        Chunks are exactly `chunk_size` long except the last, independent of the page size.
        Returns only a summary of the files written; the results are discarded after each flush.
        """
        report = ChunkedExport()
        buffer: list[dict[str, object]] = []
        for page in self.walk(url, MAX_PER_PAGE, START_CURSOR, transform=transform, on_page=on_page):
            buffer.extend(page.results)
            while len(buffer) >= chunk_size:
                self._flush(report, buffer[:chunk_size], sink, export_json, export_csv)
                buffer = buffer[chunk_size:]
        if buffer:
            self._flush(report, buffer, sink, export_json, export_csv)
        log.info(f'exported {report.total_results} results in {report.chunk_count} chunk(s)')
        return report

    def _flush(
        self,
        report: ChunkedExport,
        chunk: list[dict[str, object]],
        sink: ExportSink,
        export_json: str | None,
        export_csv: str | None,
    ) -> None:
        report.chunk_count += 1
        report.files.extend(sink.flush_chunk(chunk, report.chunk_count, export_json, export_csv))
        report.total_results += len(chunk)

    def _past_the_end(self, url: str, per_page: int, page_number: int, resolved: ResolvedCursor) -> Page:
        page: Page = Page.empty(UrlBuilder.with_pagination(url, per_page, resolved.cursor), page_number, per_page)
        page.meta.count = resolved.count
        return page
