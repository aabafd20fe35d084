"""
Pre-flight checks on a SearchRequest. Everything here runs before the first request is made.
"""

import logging

from openalex_sdk.config import MAX_PER_PAGE, SEARCH_FIELDS
from openalex_sdk.errors import ValidationError
from openalex_sdk.models import SearchRequest

log = logging.getLogger(__name__)


def validate_request(collection: str, request: SearchRequest, *, chunked: bool = False) -> None:
    """
    Raises ValidationError when the request's parameters conflict or are missing a companion value.
    `chunked` marks the export-as-you-go operation, which requires `drain_all`, a `chunk_size` and an export target.
    Called by: OpenAlex._search() and OpenAlex._search_in_chunks()
    """
    ## traversal mode -----------------------------------------------
    has_start: bool = request.start_page is not None
    has_end: bool = request.end_page is not None
    if has_start != has_end:
        raise ValidationError('`start_page` and `end_page` must be given together')
    if request.is_window and request.drain_all:
        raise ValidationError('a page window (`start_page`/`end_page`) cannot be combined with `drain_all`')
    if request.is_window and request.end_page < request.start_page:  # type: ignore[operator]
        raise ValidationError(f'`end_page` ({request.end_page}) is before `start_page` ({request.start_page})')
    if request.is_window and request.start_page < 1:  # type: ignore[operator]
        raise ValidationError('`start_page` must be 1 or greater')
    if request.page < 1:
        raise ValidationError('`page` must be 1 or greater')
    if not 1 <= request.per_page <= MAX_PER_PAGE:
        raise ValidationError(f'`per_page` must be between 1 and {MAX_PER_PAGE}')

    ## search -------------------------------------------------------
    if request.search_field and not request.query:
        raise ValidationError('`search_field` needs a `query` to search for')
    if request.search_field and request.search_field not in SEARCH_FIELDS.get(collection, ()):
        allowed: str = ', '.join(SEARCH_FIELDS.get(collection, ()))
        raise ValidationError(f'`{request.search_field}` is not searchable on {collection}; use one of: {allowed}')
    if request.abstract_to_text and collection != 'works':
        raise ValidationError('`abstract_to_text` only applies to works')

    ## chunking -----------------------------------------------------
    if request.chunk_size is not None:
        if not request.drain_all:
            raise ValidationError('`chunk_size` only applies together with `drain_all`')
        if request.chunk_size < 1:
            raise ValidationError('`chunk_size` must be 1 or greater')
        if not (request.export_json or request.export_csv):
            raise ValidationError('`chunk_size` needs `export_json` or `export_csv` to flush chunks to')
    if chunked and request.chunk_size is None:
        raise ValidationError('a chunked export needs `drain_all` and a `chunk_size`')
    if not chunked and request.chunk_size is not None:
        raise ValidationError('`chunk_size` is handled by the `*_in_chunks` methods, which return no results')
    log.debug(f'validated request for {collection}, ``{request}``')
