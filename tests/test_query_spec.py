import dataclasses

import pytest
from blog_models import User

from cqrs_ddd_queryable.ast import parse_inclusion, parse_predicate, parse_selection
from cqrs_ddd_queryable.exceptions import (
    FieldNotFoundError,
    ProjectionRelationNotIncludedError,
    ValidationError,
)
from cqrs_ddd_queryable.metadata import EntityMetadata, MetadataRegistry
from cqrs_ddd_queryable.query_spec import QuerySpec, compile_query_spec


@pytest.fixture
def user(registry: MetadataRegistry) -> EntityMetadata:
    return registry.get(User)


def test_spec_is_immutable(user: EntityMetadata) -> None:
    spec = QuerySpec()
    extended = spec.with_predicate(parse_predicate({"name": {"eq": "x"}}, user))
    assert spec.predicates == ()
    assert len(extended.predicates) == 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        spec.limit = 3  # type: ignore[misc]


def test_ordering_replace_and_append() -> None:
    spec = QuerySpec().with_ordering("name").then_ordering("age", "DESC")
    assert spec.order_by == (("name", "asc"), ("age", "desc"))
    assert spec.with_ordering("email", "desc").order_by == (("email", "desc"),)


def test_invalid_direction() -> None:
    with pytest.raises(ValidationError):
        QuerySpec().with_ordering("name", "sideways")


def test_pagination_keeps_unset_values() -> None:
    spec = QuerySpec().with_pagination(limit=5).with_pagination(offset=10)
    assert (spec.offset, spec.limit) == (10, 5)


def test_to_dict(user: EntityMetadata) -> None:
    spec = (
        QuerySpec()
        .with_inclusions(parse_inclusion({"posts": True}, user))
        .with_selections(parse_selection({"name": True}, user))
        .with_predicate(parse_predicate({"age": {"gt": 1}}, user))
        .with_ordering("name", "desc")
        .with_pagination(limit=5, offset=10)
        .with_distinct()
    )
    assert spec.to_dict() == {
        "where": [{"age": {"gt": 1}}],
        "include": [{"posts": True}],
        "select": [{"name": True}],
        "order_by": ["-name"],
        "offset": 10,
        "limit": 5,
        "distinct": True,
    }


def _scenario_a(user: EntityMetadata, *, predicate_first: bool) -> QuerySpec:
    include = parse_inclusion({"posts": True}, user)
    select = parse_selection(
        {"name": True, "posts": {"title": {"as": "postTitle"}}}, user
    )
    where = parse_predicate({"posts": {"published": {"eq": True}}}, user)
    spec = QuerySpec()
    if predicate_first:
        spec = spec.with_predicate(where).with_selections(select)
        return spec.with_inclusions(include)
    spec = spec.with_inclusions(include).with_selections(select)
    return spec.with_predicate(where)


@pytest.mark.parametrize("predicate_first", [False, True])
def test_scenario_a_compiles_one_shared_join(
    user: EntityMetadata, predicate_first: bool
) -> None:
    spec = _scenario_a(user, predicate_first=predicate_first)
    compiled = compile_query_spec(spec, user)
    assert [(j.alias, j.path, j.select) for j in compiled.joins] == [
        ("user_posts", "posts", True)
    ]
    assert compiled.predicate.text == "user_posts.published = :published_0"
    assert compiled.projection.root_columns == {"name": "name"}
    posts = compiled.projection.node("posts")
    assert posts is not None and posts.columns == {"title": "postTitle"}


def test_scenario_b_selection_without_inclusion(user: EntityMetadata) -> None:
    select = parse_selection({"posts": {"title": True}}, user)
    spec = QuerySpec().with_selections(select)
    with pytest.raises(ProjectionRelationNotIncludedError) as exc_info:
        compile_query_spec(spec, user)
    assert exc_info.value.path == "posts"


def test_multiple_predicates_are_parenthesised(user: EntityMetadata) -> None:
    spec = (
        QuerySpec()
        .with_predicate(parse_predicate({"name": {"eq": "a"}, "age": {"gt": 1}}, user))
        .with_predicate(parse_predicate({"email": {"isNotNull": True}}, user))
    )
    compiled = compile_query_spec(spec, user, "u")
    assert compiled.predicate.text == (
        "(u.name = :name_0 AND u.age > :age_1) AND (u.email IS NOT NULL)"
    )


def test_stable_ordering_appends_primary_key(user: EntityMetadata) -> None:
    spec = QuerySpec().with_ordering("age", "desc")
    compiled = compile_query_spec(spec, user)
    assert [(c.field, c.descending) for c in compiled.order_by] == [
        ("age", True),
        ("id", False),
    ]

    unstable = compile_query_spec(spec, user, stable_ordering=False)
    assert [c.field for c in unstable.order_by] == ["age"]


def test_primary_key_is_not_appended_twice(user: EntityMetadata) -> None:
    compiled = compile_query_spec(QuerySpec().with_ordering("id", "desc"), user)
    assert [(c.field, c.descending) for c in compiled.order_by] == [("id", True)]


def test_ordering_by_relation_field_joins(user: EntityMetadata) -> None:
    compiled = compile_query_spec(QuerySpec().with_ordering("profile.bio"), user)
    assert compiled.order_by[0].alias == "user_profile"
    assert [(j.alias, j.select) for j in compiled.joins] == [("user_profile", False)]


def test_ordering_by_unknown_field(user: EntityMetadata) -> None:
    with pytest.raises(FieldNotFoundError):
        compile_query_spec(QuerySpec().with_ordering("nickname"), user)


def test_each_compilation_uses_a_fresh_context(user: EntityMetadata) -> None:
    where = parse_predicate({"posts": {"id": {"eq": 1}}}, user)
    spec = QuerySpec().with_predicate(where)
    first = compile_query_spec(spec, user)
    second = compile_query_spec(spec, user)
    assert first.predicate == second.predicate
    assert len(second.joins) == 1
