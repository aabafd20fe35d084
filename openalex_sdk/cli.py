"""
Command-line access to the client.

Usage:
  uv run python -m openalex_sdk search works --query education --search-field title --per-page 50 --page 2
  uv run python -m openalex_sdk search works --filter has_fulltext=true --start-page 1 --end-page 3 --to-csv out/works
  uv run python -m openalex_sdk search authors --all --chunk-size 1000 --to-json out/authors
  uv run python -m openalex_sdk get works 10.7717/peerj.4375 --external-id doi
  uv run python -m openalex_sdk autocomplete "machine learn"
  uv run python -m openalex_sdk ngram W2741809807

Env:
  LOG_LEVEL (optional) -- defaults to INFO
  OPENALEX_EMAIL, OPENALEX_API_KEY, OPENALEX_BASE_URL (optional)
"""

import argparse
import json
import logging
import math
import os
import sys

import httpx
from tqdm import tqdm

from openalex_sdk.client import OpenAlex
from openalex_sdk.config import COLLECTIONS, MAX_PER_PAGE, ClientConfig
from openalex_sdk.errors import OpenAlexError
from openalex_sdk.models import ChunkedExport, FilterValue, Lookup, Page, SearchRequest, SortBy

log = logging.getLogger(__name__)

LOOKUP_METHODS: dict[str, str] = {
    'works': 'work',
    'authors': 'author',
    'sources': 'source',
    'institutions': 'institution',
    'topics': 'topic',
}


def configure_logging() -> None:
    """
    Sets up root logging from the `LOG_LEVEL` env var, and keeps httpx quiet unless debugging.
    """
    log_level_name: str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(
        logging, log_level_name, logging.INFO
    )  # maps the string name to the corresponding logging level constant; defaults to INFO
    logging.basicConfig(
        level=log_level,
        format='[%(asctime)s] %(levelname)s [%(module)s-%(funcName)s()::%(lineno)d] %(message)s',
        datefmt='%d/%b/%Y %H:%M:%S',
    )
    if log_level <= logging.INFO:
        for noisy in ('httpx', 'httpcore'):
            lg = logging.getLogger(noisy)
            lg.setLevel(logging.WARNING)
            lg.propagate = False  # don't bubble up to root


def parse_filter_args(pairs: list[str]) -> dict[str, FilterValue]:
    """
    Turns `key=value` strings into a filter map.
    - `true`/`false` become booleans.
    - A repeated key collects its values into a list, in the order given.
    """
    filter_map: dict[str, FilterValue] = {}
    for pair in pairs:
        key, sep, raw = pair.partition('=')
        if not sep or not key:
            raise argparse.ArgumentTypeError(f'filter ``{pair}`` is not in key=value form')
        value: FilterValue = {'true': True, 'false': False}.get(raw.lower(), raw)
        if key in filter_map:
            existing: FilterValue = filter_map[key]
            filter_map[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            filter_map[key] = value
    return filter_map


def parse_sort_arg(raw: str | None) -> SortBy | None:
    """
    Parses `field` or `field:order` into a SortBy.
    """
    if not raw:
        return None
    field, _sep, order = raw.partition(':')
    return SortBy(field=field, order=order or 'asc')


class CLI:
    """
    Manages command-line parsing.
    - `search` runs a collection search in any traversal mode, with optional export.
    - `get` looks up one entity by OpenAlex id or external id.
    - `autocomplete` and `ngram` expose the two works-only helpers.
    - Exposes a parse helper to support testing with custom argv.
    """

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description='Search and export OpenAlex works, authors, sources, etc.')
        parser.add_argument('--email', default=None, help='Contact email sent to OpenAlex (polite pool).')
        parser.add_argument('--api-key', default=None, help='OpenAlex API key.')
        subparsers = parser.add_subparsers(dest='command', required=True)

        search = subparsers.add_parser('search', help='Search a collection.')
        search.add_argument('kind', choices=COLLECTIONS)
        search.add_argument('--query', default=None, help='Free-text search.')
        search.add_argument('--search-field', default=None, help='Restrict the query to one field, like `title`.')
        search.add_argument('--per-page', type=int, default=25, metavar='INTEGER')
        search.add_argument('--page', type=int, default=1, metavar='INTEGER')
        search.add_argument('--filter', action='append', default=[], metavar='KEY=VALUE', help='Repeatable.')
        search.add_argument('--group-by', default=None)
        search.add_argument('--sort', default=None, metavar='FIELD[:ORDER]')
        search.add_argument('--all', action='store_true', dest='drain_all', help='Fetch every page.')
        search.add_argument('--start-page', type=int, default=None, metavar='INTEGER')
        search.add_argument('--end-page', type=int, default=None, metavar='INTEGER')
        search.add_argument(
            '--chunk-size',
            type=int,
            default=None,
            metavar='INTEGER',
            help='With --all: export every INTEGER results to numbered files instead of holding them in memory.',
        )
        search.add_argument('--to-json', default=None, metavar='STEM', help='Write `<STEM>.json`.')
        search.add_argument('--to-csv', default=None, metavar='STEM', help='Write `<STEM>.csv`.')
        search.add_argument(
            '--abstract-text', action='store_true', help='Works only: replace inverted-index abstracts with text.'
        )

        get = subparsers.add_parser('get', help='Look up one entity.')
        get.add_argument('kind', choices=COLLECTIONS)
        get.add_argument('entity_id')
        get.add_argument('--external-id', default=None, help='Namespace of `entity_id`, like `doi` or `orcid`.')

        autocomplete = subparsers.add_parser('autocomplete', help='Autocomplete work titles.')
        autocomplete.add_argument('query')

        ngram = subparsers.add_parser('ngram', help='Show n-grams for a work.')
        ngram.add_argument('work_id')
        return parser

    @staticmethod
    def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
        return CLI.build_parser().parse_args(argv)


def build_search_request(args: argparse.Namespace) -> SearchRequest:
    return SearchRequest(
        query=args.query,
        search_field=args.search_field,
        per_page=args.per_page,
        page=args.page,
        filter=parse_filter_args(args.filter),
        group_by=args.group_by,
        sort_by=parse_sort_arg(args.sort),
        drain_all=args.drain_all,
        start_page=args.start_page,
        end_page=args.end_page,
        chunk_size=args.chunk_size,
        export_json=args.to_json,
        export_csv=args.to_csv,
        abstract_to_text=args.abstract_text,
    )


def run_search(oa: OpenAlex, kind: str, request: SearchRequest) -> None:
    """
    Runs a search, with a progress bar for anything longer than one page.
    Prints results as JSON unless they were exported.
    Called by: main()
    """
    multi_page: bool = request.drain_all or request.is_window
    progress = tqdm(desc=f'Fetching {kind}', unit='page', disable=not multi_page)

    def on_page(page: Page) -> None:
        progress.update(1)
        if progress.total is None and page.meta.count and request.drain_all:
            progress.total = math.ceil(page.meta.count / (page.meta.per_page or MAX_PER_PAGE))
            progress.refresh()

    with progress:
        if request.chunk_size is not None:
            report: ChunkedExport = getattr(oa, f'{kind}_in_chunks')(request, on_page=on_page)
        else:
            page: Page = getattr(oa, kind)(request, on_page=on_page)
    if request.chunk_size is not None:
        print(f'Done. Exported {report.total_results} result(s) in {report.chunk_count} chunk(s).')
        for exported in report.files:
            print(f'  {exported.path} ({exported.size})')
        return
    if request.export_json or request.export_csv:
        print(f'Done. Exported {len(page.results)} result(s) (of {page.meta.count} matching).')
        return
    print(json.dumps(page.to_json(), ensure_ascii=False, indent=2))


def main(argv: list[str] | None = None) -> int:
    """
    Parses args, builds a client from env + args, dispatches the subcommand.
    Returns 1 (after printing to stderr) on validation errors, error statuses, and network failures left after retries.
    Called by: dundermain, and the `openalex-sdk` console script.
    """
    configure_logging()
    args: argparse.Namespace = CLI.parse_args(argv)
    config: ClientConfig = ClientConfig.from_env()
    try:
        with OpenAlex(args.email, args.api_key, config=config) as oa:
            if args.command == 'search':
                run_search(oa, args.kind, build_search_request(args))
            elif args.command == 'get':
                lookup_method = getattr(oa, LOOKUP_METHODS[args.kind])
                if args.kind == 'topics':
                    result: Lookup = lookup_method(args.entity_id)
                else:
                    result = lookup_method(args.entity_id, external_id=args.external_id)
                if not result.found:
                    print(f'Not found: {args.kind} ``{args.entity_id}``', file=sys.stderr)
                print(json.dumps(result.entity, ensure_ascii=False, indent=2))
            elif args.command == 'autocomplete':
                print(json.dumps(oa.autocomplete_works(args.query).to_json(), ensure_ascii=False, indent=2))
            elif args.command == 'ngram':
                print(json.dumps(oa.ngram(args.work_id), ensure_ascii=False, indent=2))
    except (OpenAlexError, httpx.HTTPError, argparse.ArgumentTypeError) as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
