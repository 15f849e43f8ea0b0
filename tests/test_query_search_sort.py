from tests.base import *  # noqa: F401,F403

from app.schemas.query import SearchOptions, SortDirective
from app.services.query.search import apply_search, build_search_clause, split_search_terms
from app.services.query.sorting import apply_sorting, keyset_columns, sort_expression


class SearchTermSplitTests(unittest.TestCase):
    def test_splits_on_whitespace_followed_by_slash(self):
        self.assertEqual(split_search_terms("alice /smith"), ["alice", "smith"])
        self.assertEqual(split_search_terms("alice  /smith /stone"), ["alice", "smith", "stone"])

    def test_plain_spaces_do_not_split(self):
        self.assertEqual(split_search_terms("alice smith"), ["alice smith"])

    def test_empty_term(self):
        self.assertEqual(split_search_terms(""), [])
        self.assertIsNone(build_search_clause(User, "", ["name"]))
        self.assertIsNone(build_search_clause(User, "alice", []))


class SearchApplicationTests(QueryEngineBase):
    def _search(self, term, fields=("name", "email"), **options):
        opts = SearchOptions(term=term, **options)
        query = apply_search(self.db.query(User), User, term, opts, list(fields))
        return sorted(self.ids(query.all()))

    def test_partial_match_is_case_insensitive_by_default(self):
        self.assertEqual(self._search("SMITH"), [1, 3])

    def test_starts_with_and_ends_with(self):
        self.assertEqual(self._search("bob", match_type="starts_with"), [2])
        self.assertEqual(self._search(".org", fields=("email",), match_type="ends_with"), [3])

    def test_exact_match(self):
        self.assertEqual(self._search("alice smith", fields=("name",), match_type="exact"), [1])

    def test_exact_match_respects_case_sensitivity(self):
        self.assertEqual(self._search("alice smith", fields=("name",), match_type="exact", case_sensitive=True), [])
        self.assertEqual(self._search("Alice Smith", fields=("name",), match_type="exact", case_sensitive=True), [1])

    def test_word_matching_matches_whole_words(self):
        self.assertEqual(self._search("smith", fields=("name",)), [1, 3])
        self.assertEqual(self._search("smith", fields=("name",), word_matching=True), [1])

    def test_combine_logic(self):
        self.assertEqual(self._search("alice /smith", fields=("name",), combine_logic="and"), [1])
        self.assertEqual(self._search("alice /smith", fields=("name",), combine_logic="or"), [1, 3])

    def test_search_clause_is_grouped_with_other_filters(self):
        opts = SearchOptions(term="smith")
        query = apply_search(self.db.query(User).filter(User.is_active.is_(False)), User, "smith", opts, ["name", "email"])
        self.assertEqual(self.ids(query.all()), [])

    def test_empty_term_leaves_query_untouched(self):
        self.assertEqual(self._search(""), [1, 2, 3])

    def test_driver_search_does_not_split_terms(self):
        rows = self.driver().search(User, "alice /smith")
        self.assertEqual(rows, [])
        self.assertEqual(self.ids(self.driver().search(User, "stone")), [2])

    def test_driver_search_applies_filters(self):
        rows = self.driver().search(User, "smith", filters={"is_active": "1"})
        self.assertEqual(sorted(self.ids(rows)), [1, 3])


class SortingTests(QueryEngineBase):
    def _sorted(self, model, field, direction="asc"):
        query = apply_sorting(self.db.query(model), model, SortDirective(field=field, direction=direction))
        return self.ids(query.all())

    def test_sort_by_column(self):
        self.assertEqual(self._sorted(Post, "title"), [4, 1, 3, 2])
        self.assertEqual(self._sorted(Post, "title", "desc"), [2, 3, 1, 4])

    def test_sort_by_relation_count(self):
        self.assertEqual(self._sorted(User, "posts_count", "desc"), [1, 3, 2])
        self.assertEqual(self._sorted(User, "posts_count", "asc"), [2, 3, 1])

    def test_sort_by_many_to_many_count(self):
        self.assertEqual(self._sorted(Tag, "posts_count", "desc"), [2, 1, 3])

    def test_sort_by_self_referential_count(self):
        self.assertEqual(self._sorted(Category, "children_count", "desc"), [1, 2, 4, 3])

    def test_count_suffix_without_relation_falls_back_to_column_name(self):
        expression = sort_expression(User, "nope_count")
        self.assertEqual(expression.name, "nope_count")

    def test_default_sort_is_primary_key_ascending(self):
        query = apply_sorting(self.db.query(User), User)
        self.assertEqual(self.ids(query.all()), [1, 2, 3])

    def test_keyset_columns(self):
        self.assertEqual(keyset_columns(User, SortDirective(field="id"))[0], None)
        sort_column, pk, descending = keyset_columns(User, SortDirective(field="name", direction="desc"))
        self.assertEqual(sort_column.key, "name")
        self.assertEqual(pk.key, "id")
        self.assertTrue(descending)
        self.assertEqual(keyset_columns(User, SortDirective(field="posts_count"))[0].key, "posts_count")
        self.assertIsNone(keyset_columns(User, SortDirective(field="nope"))[0])

    def test_nullable_sort_puts_nulls_lowest(self):
        ascending = apply_sorting(self.db.query(Post), Post, SortDirective(field="published_at"))
        descending = apply_sorting(self.db.query(Post), Post, SortDirective(field="published_at", direction="desc"))
        self.assertIn("NULLS FIRST", str(ascending.statement.compile(self.engine)))
        self.assertEqual(self.ids(ascending.all()), [2, 1, 3, 4])
        self.assertEqual(self.ids(descending.all()), [4, 3, 1, 2])
