"""
Request and response shapes.

Results themselves stay plain JSON dicts, in the order the API returned them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from openalex_sdk.config import DEFAULT_PER_PAGE

FilterValue = str | int | float | bool | list[str | int | float | bool]


@dataclass(frozen=True)
class SortBy:
    field: str
    order: str = 'asc'


@dataclass(frozen=True)
class SearchRequest:
    """
    Describes one logical search against a collection.
    - `query` is free text; `search_field` narrows it to one field (eg `title`).
    - `page`/`per_page` select a single page; `start_page`/`end_page` select an inclusive window.
    - `drain_all` fetches every page; with `chunk_size` the results are exported chunk by chunk instead.
    - `export_json`/`export_csv` are filename stems; the extension is added on write.
    - `abstract_to_text` (works only) swaps `abstract_inverted_index` for a plain-text `abstract`.
    """

    query: str | None = None
    search_field: str | None = None
    per_page: int = DEFAULT_PER_PAGE
    page: int = 1
    filter: Mapping[str, FilterValue] = field(default_factory=dict)
    group_by: str | None = None
    sort_by: SortBy | None = None
    drain_all: bool = False
    start_page: int | None = None
    end_page: int | None = None
    chunk_size: int | None = None
    export_json: str | None = None
    export_csv: str | None = None
    abstract_to_text: bool = False

    @property
    def is_window(self) -> bool:
        return self.start_page is not None and self.end_page is not None


@dataclass
class PageMeta:
    count: int | None = None
    page: int | None = None
    per_page: int | None = None
    next_cursor: str | None = None

    @classmethod
    def from_json(cls, meta_json: dict[str, object]) -> 'PageMeta':
        return cls(
            count=meta_json.get('count'),  # type: ignore[arg-type]
            page=meta_json.get('page'),  # type: ignore[arg-type]
            per_page=meta_json.get('per_page'),  # type: ignore[arg-type]
            next_cursor=meta_json.get('next_cursor') or None,  # type: ignore[arg-type]
        )

    def to_json(self) -> dict[str, object]:
        return {
            'count': self.count,
            'page': self.page,
            'per_page': self.per_page,
            'next_cursor': self.next_cursor,
        }


@dataclass
class Page:
    """
    One page of results, or the concatenation of several (a window or a full drain).
    `meta.next_cursor` is None on the terminal page.
    """

    results: list[dict[str, object]]
    meta: PageMeta
    url: str = ''
    group_by: list[dict[str, object]] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, object], url: str) -> 'Page':
        return cls(
            results=list(data.get('results') or []),  # type: ignore[call-overload]
            meta=PageMeta.from_json(data.get('meta') or {}),  # type: ignore[arg-type]
            url=url,
            group_by=list(data.get('group_by') or []),  # type: ignore[call-overload]
        )

    @classmethod
    def empty(cls, url: str, page: int | None = None, per_page: int | None = None) -> 'Page':
        """
        Builds the "no more results" page: zero results and no next cursor.
        """
        return cls(results=[], meta=PageMeta(count=0, page=page, per_page=per_page), url=url)

    def to_json(self) -> dict[str, object]:
        data: dict[str, object] = {'meta': {**self.meta.to_json(), 'url': self.url}, 'results': self.results}
        if self.group_by:
            data['group_by'] = self.group_by
        return data


class ResolvedCursor(NamedTuple):
    """
    Outcome of replaying pages to reach a target page.
    `exhausted` is True when the collection ended first; `cursor` is then the last one seen.
    `count` is the collection size reported by the last fetched page, if any was fetched.
    """

    cursor: str
    exhausted: bool = False
    count: int | None = None


@dataclass(frozen=True)
class Found:
    entity: dict[str, object]

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    """
    A lookup that came back 404. `entity` is a placeholder carrying only the requested id and empty collections.
    """

    id: str
    entity: dict[str, object]

    @property
    def found(self) -> bool:
        return False


Lookup = Found | NotFound


@dataclass(frozen=True)
class ExportedFile:
    path: Path
    size: str


@dataclass
class ChunkedExport:
    """
    Summary of a chunked drain. Holds the files written, never the results themselves.
    """

    files: list[ExportedFile] = field(default_factory=list)
    total_results: int = 0
    chunk_count: int = 0
