"""
Holds the immutable client configuration and the API's fixed constants.
"""

import os
from dataclasses import dataclass, field

BASE_URL: str = 'https://api.openalex.org'
START_CURSOR: str = '*'
DEFAULT_PER_PAGE: int = 25
MAX_PER_PAGE: int = 200

COLLECTIONS: tuple[str, ...] = ('works', 'authors', 'sources', 'institutions', 'topics')

## external-id namespaces accepted by `/<collection>/<namespace>:<id>`
EXTERNAL_ID_NAMESPACES: dict[str, tuple[str, ...]] = {
    'works': ('doi', 'mag', 'pmid', 'pmcid'),
    'authors': ('orcid', 'mag', 'scopus', 'twitter', 'wikipedia'),
    'sources': ('issn', 'issn_l', 'mag', 'fatcat', 'wikidata'),
    'institutions': ('ror', 'mag', 'grid', 'wikipedia', 'wikidata'),
    'topics': (),
}

## fields usable as `<field>.search` filters
SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    'works': (
        'abstract',
        'default',
        'display_name',
        'fulltext',
        'raw_affiliation_strings',
        'title',
        'title_and_abstract',
    ),
    'authors': ('display_name',),
    'sources': ('display_name',),
    'institutions': ('display_name',),
    'topics': ('display_name',),
}


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable settings shared by every request a client makes.
    - `base_url` points at the API host; overridable for testing.
    - `email` and `api_key` identify the caller to the API.
    - `max_retries`, `retry_delay_s` and `retry_http_codes` drive the transport's retry policy.
    - `max_retry_delay_s` caps any single wait between attempts, including a server-sent `Retry-After`.
    - `timeout_s` is the per-request read timeout; there is no overall budget for a traversal.
    """

    base_url: str = BASE_URL
    email: str | None = None
    api_key: str | None = None
    max_retries: int = 3
    retry_delay_s: float = 1.0
    max_retry_delay_s: float = 15.0
    retry_http_codes: frozenset[int] = field(default_factory=lambda: frozenset({429, 500, 502, 503, 504}))
    timeout_s: float = 60.0
    user_agent: str = 'openalex-sdk/1.0 (+https://github.com/sei/OpenAlex-SDK)'

    @classmethod
    def from_env(cls) -> 'ClientConfig':
        """
        Builds a config from `OPENALEX_EMAIL`, `OPENALEX_API_KEY` and `OPENALEX_BASE_URL`, falling back to defaults.
        """
        return cls(
            base_url=os.getenv('OPENALEX_BASE_URL', BASE_URL).rstrip('/'),
            email=os.getenv('OPENALEX_EMAIL') or None,
            api_key=os.getenv('OPENALEX_API_KEY') or None,
        )

    def identification_params(self) -> dict[str, str]:
        """
        Returns the query params that identify the caller (`mailto`, `api_key`); empty when neither is set.
        """
        params: dict[str, str] = {}
        if self.email:
            params['mailto'] = self.email
        if self.api_key:
            params['api_key'] = self.api_key
        return params

    def user_agent_header(self) -> str:
        if self.email:
            return f'{self.user_agent} (mailto:{self.email})'
        return self.user_agent
