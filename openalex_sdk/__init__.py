"""
Client for the OpenAlex API: typed searches, transparent cursor pagination, JSON/CSV export.
"""

from openalex_sdk.abstracts import abstract_from_inverted_index
from openalex_sdk.client import OpenAlex
from openalex_sdk.config import ClientConfig
from openalex_sdk.errors import OpenAlexError, TransportError, ValidationError
from openalex_sdk.models import ChunkedExport, Found, NotFound, Page, PageMeta, SearchRequest, SortBy

__all__ = [
    'ChunkedExport',
    'ClientConfig',
    'Found',
    'NotFound',
    'OpenAlex',
    'OpenAlexError',
    'Page',
    'PageMeta',
    'SearchRequest',
    'SortBy',
    'TransportError',
    'ValidationError',
    'abstract_from_inverted_index',
]
