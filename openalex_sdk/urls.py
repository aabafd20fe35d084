"""
Builds the OpenAlex urls used by the client. Nothing here touches the network.
"""

from collections.abc import Mapping
from urllib.parse import quote, urlencode

from openalex_sdk.config import BASE_URL
from openalex_sdk.models import FilterValue, SortBy

## characters of the filter/sort DSL that stay readable in the query string
DSL_SAFE: str = ':,|!<>.*/'


def render_filter_value(value: object) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def render_filter(filter_map: Mapping[str, FilterValue], search_clause: str | None = None) -> str:
    """
    Renders a filter map into the API's DSL, like `is_oa:true,type:article,type:review`.
    - Clauses are sorted by key, so equal maps always render the same string.
    - A list value becomes one clause per element, in list order.
    - A search clause (eg `title.search:education`) leads when given.
    - Values are not validated; `a|b` style OR-values pass through untouched.
    """
    clauses: list[str] = [search_clause] if search_clause else []
    for key in sorted(filter_map):
        value: FilterValue = filter_map[key]
        if isinstance(value, (list, tuple)):
            clauses.extend(f'{key}:{render_filter_value(v)}' for v in value)
        else:
            clauses.append(f'{key}:{render_filter_value(value)}')
    return ','.join(clauses)


def encode_params(params: list[tuple[str, str]]) -> str:
    return urlencode(params, quote_via=quote, safe=DSL_SAFE)


class UrlBuilder:
    """
    Centralizes construction of every url the client requests.
    - Holds a configurable `base` host to support testing and overrides.
    - Builds collection search urls (`search`, `filter`, `group_by`, `sort`, in that order).
    - Builds single-entity urls, including `<namespace>:<id>` external-id lookups.
    - Builds autocomplete and ngram urls.
    - Appends `per-page` and `cursor` to a collection url for one paginated request.
    """

    def __init__(self, base: str = BASE_URL) -> None:
        self.base: str = base.rstrip('/')

    def collection_url(
        self,
        collection: str,
        query: str | None = None,
        search_field: str | None = None,
        filter_map: Mapping[str, FilterValue] | None = None,
        group_by: str | None = None,
        sort_by: SortBy | None = None,
    ) -> str:
        """
        Builds a collection url; the same inputs always give the same string.
        With a `search_field`, the query becomes a `<field>.search` filter clause instead of the `search` param.
        """
        params: list[tuple[str, str]] = []
        search_clause: str | None = None
        if query and search_field:
            search_clause = f'{search_field}.search:{query}'
        elif query:
            params.append(('search', query))
        filter_str: str = render_filter(filter_map or {}, search_clause)
        if filter_str:
            params.append(('filter', filter_str))
        if group_by:
            params.append(('group_by', group_by))
        if sort_by is not None:
            params.append(('sort', f'{sort_by.field}:{sort_by.order}'))
        url: str = f'{self.base}/{collection}'
        if params:
            url = f'{url}?{encode_params(params)}'
        return url

    def entity_url(self, collection: str, entity_id: str, external_id: str | None = None) -> str:
        if external_id:
            return f'{self.base}/{collection}/{external_id}:{entity_id}'
        return f'{self.base}/{collection}/{entity_id}'

    def autocomplete_url(self, collection: str, query: str) -> str:
        return f'{self.base}/autocomplete/{collection}?{encode_params([("q", query)])}'

    def ngram_url(self, work_id: str) -> str:
        return f'{self.base}/works/{work_id}/ngram'

    @staticmethod
    def with_pagination(url: str, per_page: int, cursor: str) -> str:
        """
        Appends `per-page` and `cursor` to a url that may or may not already carry a query string.
        """
        sep: str = '&' if '?' in url else '?'
        return f'{url}{sep}per-page={per_page}&cursor={quote(cursor, safe="*")}'
