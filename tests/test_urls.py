import unittest

from openalex_sdk.models import SortBy
from openalex_sdk.urls import UrlBuilder, render_filter


class TestCollectionUrl(unittest.TestCase):
    """
    Tests UrlBuilder.collection_url().
    """

    def setUp(self) -> None:
        self.urls = UrlBuilder('https://api.openalex.org')

    def test_full_url(self) -> None:
        """
        Checks the order of params and the filter DSL rendering.
        """
        computed: str = self.urls.collection_url(
            'works',
            query='education',
            search_field='title',
            filter_map={'publication_year': 2020, 'has_fulltext': True},
            group_by='type',
            sort_by=SortBy('display_name', 'desc'),
        )
        expected: str = (
            'https://api.openalex.org/works'
            '?filter=title.search:education,has_fulltext:true,publication_year:2020'
            '&group_by=type&sort=display_name:desc'
        )
        self.assertEqual(computed, expected)

    def test_same_inputs_same_url(self) -> None:
        """
        Checks that equal filter maps give byte-identical urls, whatever their insertion order.
        """
        first: str = self.urls.collection_url('authors', filter_map={'a': 1, 'b': 'x'}, sort_by=SortBy('cited_by_count'))
        second: str = self.urls.collection_url('authors', filter_map={'b': 'x', 'a': 1}, sort_by=SortBy('cited_by_count'))
        self.assertEqual(first, second)
        self.assertEqual(first, 'https://api.openalex.org/authors?filter=a:1,b:x&sort=cited_by_count:asc')

    def test_plain_search_is_encoded(self) -> None:
        computed: str = self.urls.collection_url('sources', query='machine learning')
        self.assertEqual(computed, 'https://api.openalex.org/sources?search=machine%20learning')

    def test_no_params(self) -> None:
        self.assertEqual(self.urls.collection_url('topics'), 'https://api.openalex.org/topics')

    def test_list_values_become_separate_clauses(self) -> None:
        computed: str = render_filter({'type': ['article', 'review'], 'is_oa': False})
        self.assertEqual(computed, 'is_oa:false,type:article,type:review')

    def test_values_pass_through(self) -> None:
        """
        Checks that OR-values and comparison values are not rewritten.
        """
        computed: str = render_filter({'publication_year': '>2019', 'type': 'article|review'})
        self.assertEqual(computed, 'publication_year:>2019,type:article|review')


class TestOtherUrls(unittest.TestCase):
    """
    Tests the single-entity, autocomplete, ngram and pagination urls.
    """

    def setUp(self) -> None:
        self.urls = UrlBuilder('https://api.openalex.org/')

    def test_entity_url(self) -> None:
        self.assertEqual(self.urls.entity_url('works', 'W2741809807'), 'https://api.openalex.org/works/W2741809807')

    def test_entity_url_with_external_id(self) -> None:
        computed: str = self.urls.entity_url('authors', '0000-0001-6187-6610', 'orcid')
        self.assertEqual(computed, 'https://api.openalex.org/authors/orcid:0000-0001-6187-6610')

    def test_autocomplete_url(self) -> None:
        computed: str = self.urls.autocomplete_url('works', 'tigers and')
        self.assertEqual(computed, 'https://api.openalex.org/autocomplete/works?q=tigers%20and')

    def test_ngram_url(self) -> None:
        self.assertEqual(self.urls.ngram_url('W2023271753'), 'https://api.openalex.org/works/W2023271753/ngram')

    def test_with_pagination(self) -> None:
        self.assertEqual(
            UrlBuilder.with_pagination('https://api.openalex.org/works', 50, '*'),
            'https://api.openalex.org/works?per-page=50&cursor=*',
        )
        self.assertEqual(
            UrlBuilder.with_pagination('https://api.openalex.org/works?search=x', 200, 'abc='),
            'https://api.openalex.org/works?search=x&per-page=200&cursor=abc%3D',
        )


if __name__ == '__main__':
    unittest.main()
