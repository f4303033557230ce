"""
Tests for the query refinement pipeline: scope, filter, order, paginate.
"""

import pytest
from sqlalchemy import select

from admin_shared.config.constants import Limits, OrderDirection
from resource_admin.resources.params import OrderSpec, PageSpec, RefinementSpec, parse_refinement
from resource_admin.resources.refinement import (
    INVALID,
    ResultSet,
    apply_filters,
    apply_order,
    apply_scope,
    coerce_value,
    count_rows,
    paginate,
    refine,
    refine_query,
    resolve_per_page,
    resolve_scope,
)
from tests.conftest import titles
from tests.sandbox import Article, ArticleService, Author, AuthorService

DESCRIPTOR = ArticleService.descriptor


def run(db, query):
    return [record.title for record in db.scalars(query)]


class TestScopeStep:

    def test_declared_scope_applied(self, db_session, seed_articles):
        query = apply_scope(select(Article), "published", DESCRIPTOR)
        assert run(db_session, query) == ["baz"]

    def test_unknown_scope_falls_back_to_default(self, db_session, seed_articles):
        assert resolve_scope("archived", DESCRIPTOR).name == "all"
        query = apply_scope(select(Article), "archived", DESCRIPTOR)
        assert sorted(run(db_session, query)) == ["bar", "baz", "foo"]

    def test_absent_scope_uses_default(self):
        assert resolve_scope(None, DESCRIPTOR).name == "all"

    def test_no_default_scope_means_no_scope(self):
        assert resolve_scope("anything", AuthorService.descriptor) is None

    def test_base_query_not_modified(self, db_session, seed_articles):
        base = select(Article)
        apply_scope(base, "published", DESCRIPTOR)
        assert len(run(db_session, base)) == 3


class TestFilterStep:

    def test_exact_filter(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"title": "foo"}, DESCRIPTOR)
        assert run(db_session, query) == ["foo"]

    def test_exact_filter_coerces_booleans(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"published": "true"}, DESCRIPTOR)
        assert run(db_session, query) == ["baz"]

    def test_contains_filter_is_case_insensitive(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"q": "BA"}, DESCRIPTOR)
        assert sorted(run(db_session, query)) == ["bar", "baz"]

    def test_contains_filter_escapes_wildcards(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"q": "%"}, DESCRIPTOR)
        assert run(db_session, query) == []

    @pytest.mark.parametrize("value,expected", [
        ({"min": "15"}, ["bar", "baz"]),
        ({"max": "20"}, ["baz", "foo"]),
        ({"min": "15", "max": "25"}, ["baz"]),
        ("10..20", ["baz", "foo"]),
        ("30", ["bar"]),
        ({"min": "lots"}, ["bar", "baz", "foo"]),
    ])
    def test_range_filter(self, db_session, seed_articles, value, expected):
        query = apply_filters(select(Article), {"views": value}, DESCRIPTOR)
        assert sorted(run(db_session, query)) == expected

    @pytest.mark.parametrize("value", ["1,3", ["1", "3"], ["1", "x", "3"]])
    def test_multiselect_filter(self, db_session, seed_articles, value):
        query = apply_filters(select(Article), {"id": value}, DESCRIPTOR)
        assert sorted(run(db_session, query)) == ["baz", "foo"]

    def test_custom_filter(self, db_session, seed_articles, seed_author):
        seed_articles[1].author = seed_author
        db_session.commit()
        query = apply_filters(select(Article), {"author": "Ada"}, DESCRIPTOR)
        assert run(db_session, query) == ["bar"]

    def test_filters_combine_with_and(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"q": "ba", "published": "false"}, DESCRIPTOR)
        assert run(db_session, query) == ["bar"]

    def test_unknown_field_ignored(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"color": "red"}, DESCRIPTOR)
        assert len(run(db_session, query)) == 3

    def test_malformed_value_is_noop(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"published": "perhaps"}, DESCRIPTOR)
        assert len(run(db_session, query)) == 3

    def test_blank_value_skipped(self, db_session, seed_articles):
        query = apply_filters(select(Article), {"title": "", "id": []}, DESCRIPTOR)
        assert len(run(db_session, query)) == 3

    @pytest.mark.parametrize("filters", [
        {"views": "99999999999999999999"},
        {"views": "99999999999999999999..-99999999999999999999"},
        {"id": "99999999999999999999"},
    ])
    def test_integer_beyond_column_range_is_noop(self, db_session, seed_articles, filters):
        query = apply_filters(select(Article), filters, DESCRIPTOR)
        assert len(run(db_session, query)) == 3


class TestOrderStep:

    def test_orders_by_declared_field(self, db_session, seed_articles):
        query = apply_order(select(Article), OrderSpec("views", OrderDirection.DESC), DESCRIPTOR)
        assert run(db_session, query) == ["bar", "baz", "foo"]

    def test_undeclared_field_falls_back_to_identifier_order(self, db_session, seed_articles):
        query = apply_order(select(Article), OrderSpec("body", OrderDirection.DESC), DESCRIPTOR)
        assert run(db_session, query) == ["foo", "bar", "baz"]

    def test_declared_default_order(self, db_session):
        db_session.add_all([Author(id=1, name="Zoe"), Author(id=2, name="Ada")])
        db_session.commit()
        query = apply_order(select(Author), None, AuthorService.descriptor)
        assert [author.name for author in db_session.scalars(query)] == ["Ada", "Zoe"]

    def test_ties_keep_identifier_order(self, db_session):
        db_session.add_all([
            Article(id=5, title="same"),
            Article(id=2, title="same"),
            Article(id=9, title="same"),
        ])
        db_session.commit()
        for direction in OrderDirection:
            query = apply_order(select(Article), OrderSpec("title", direction), DESCRIPTOR)
            assert [a.id for a in db_session.scalars(query)] == [2, 5, 9]

    def test_replaces_existing_ordering(self, db_session, seed_articles):
        base = select(Article).order_by(Article.title)
        query = apply_order(base, OrderSpec("views", OrderDirection.ASC), DESCRIPTOR)
        assert run(db_session, query) == ["foo", "baz", "bar"]


class TestPaginationStep:

    @pytest.fixture
    def many_articles(self, db_session):
        db_session.add_all([Article(id=i, title=f"a{i:02d}") for i in range(1, 24)])
        db_session.commit()

    def test_pages(self, db_session, many_articles):
        query = apply_order(select(Article), None, DESCRIPTOR)
        result = paginate(db_session, query, PageSpec(number=3), DESCRIPTOR)
        assert result.per_page == 10
        assert result.total_count == 23
        assert result.total_pages == 3
        assert [a.id for a in result] == [21, 22, 23]
        assert not result.has_next
        assert result.has_prev

    @pytest.mark.parametrize("number", [0, -1, 4, 99])
    def test_out_of_range_page_is_empty(self, db_session, many_articles, number):
        query = apply_order(select(Article), None, DESCRIPTOR)
        result = paginate(db_session, query, PageSpec(number=number), DESCRIPTOR)
        assert len(result) == 0
        assert result.total_count == 23
        assert result.total_pages == 3

    def test_requested_page_size_capped(self, monkeypatch):
        from admin_shared.config.settings import settings

        monkeypatch.setattr(settings, "max_per_page", 50)
        assert resolve_per_page(PageSpec(per_page=500), DESCRIPTOR) == 50
        assert resolve_per_page(PageSpec(per_page=5), DESCRIPTOR) == 5

    def test_page_size_defaults(self):
        from admin_shared.config.settings import settings

        assert resolve_per_page(PageSpec(), DESCRIPTOR) == 10
        assert resolve_per_page(PageSpec(), AuthorService.descriptor) == settings.default_per_page

    def test_count_ignores_ordering(self, db_session, seed_articles):
        assert count_rows(db_session, select(Article).order_by(Article.title)) == 3


class TestResultSet:

    def test_metadata(self):
        result = ResultSet(items=("a", "b"), page=1, per_page=2, total_count=5)
        assert result.total_pages == 3
        assert result.to_dict() == {
            "page": 1,
            "per_page": 2,
            "total": 5,
            "pages": 3,
            "has_next": True,
            "has_prev": False,
        }

    def test_empty(self):
        result = ResultSet(items=(), page=1, per_page=10, total_count=0)
        assert result.total_pages == 0
        assert not result.has_next
        assert not result.has_prev


class TestPipeline:
    """scope -> filter -> order -> paginate."""

    def test_filter_applies_within_scope(self, db_session, seed_articles):
        spec = parse_refinement({"scope": "unpublished", "filter": {"q": "ba"}})
        result = refine(db_session, select(Article), spec, DESCRIPTOR)
        assert titles(result) == ["bar"]
        assert result.scope == "unpublished"

    def test_pagination_does_not_change_order(self, db_session, seed_articles):
        ordered = refine(
            db_session, select(Article),
            parse_refinement({"order": "title_asc", "per_page": "3"}), DESCRIPTOR,
        )
        pages = [
            refine(
                db_session, select(Article),
                parse_refinement({"order": "title_asc", "per_page": "1", "page": str(n)}), DESCRIPTOR,
            )
            for n in (1, 2, 3)
        ]
        assert [titles(page)[0] for page in pages] == titles(ordered) == ["bar", "baz", "foo"]

    def test_refine_query_is_unpaginated(self, db_session, seed_articles):
        spec = parse_refinement({"per_page": "1", "page": "2"})
        assert len(run(db_session, refine_query(select(Article), spec, DESCRIPTOR))) == 3

    def test_repeatable(self, db_session, seed_articles):
        spec = parse_refinement({"scope": "all", "order": "views_desc"})
        first = refine(db_session, select(Article), spec, DESCRIPTOR)
        second = refine(db_session, select(Article), spec, DESCRIPTOR)
        assert titles(first) == titles(second)
        assert first.to_dict() == second.to_dict()

    def test_garbage_never_raises(self, db_session, seed_articles):
        spec = parse_refinement({
            "scope": "nope",
            "filter": {"views": {"min": "x"}, "published": "maybe", "ghost": "1"},
            "order": {"field": "password", "direction": "up"},
            "page": "first",
            "per_page": "-3",
        })
        result = refine(db_session, select(Article), spec, DESCRIPTOR)
        assert titles(result) == ["foo", "bar", "baz"]
        assert result.page == 1

    def test_empty_spec_lists_everything(self, db_session, seed_articles):
        result = refine(db_session, select(Article), RefinementSpec(), DESCRIPTOR)
        assert titles(result) == ["foo", "bar", "baz"]


class TestCoerceValue:

    @pytest.mark.parametrize("column,value,expected", [
        (Article.views, "12", 12),
        (Article.views, 12.0, 12),
        (Article.published, "yes", True),
        (Article.published, "off", False),
        (Article.title, 7, "7"),
        (Article.title, "text", "text"),
        (Article.views, str(Limits.MAX_INTEGER), Limits.MAX_INTEGER),
    ])
    def test_converts_to_column_type(self, column, value, expected):
        assert coerce_value(column, value) == expected

    @pytest.mark.parametrize("column,value", [
        (Article.views, "1e3"),
        (Article.views, True),
        (Article.published, "maybe"),
        (Article.created_at, "yesterday"),
        (Article.views, ["1"]),
        (Article.views, "99999999999999999999"),
        (Article.views, Limits.MAX_INTEGER + 1),
        (Article.views, Limits.MIN_INTEGER - 1),
    ])
    def test_unconvertible_values(self, column, value):
        assert coerce_value(column, value) is INVALID
