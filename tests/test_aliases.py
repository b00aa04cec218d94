import logging

import pytest
from blog_models import User

from cqrs_ddd_queryable.aliases import AliasRegistry, JoinPlan, RelationResolver
from cqrs_ddd_queryable.exceptions import AliasConflictError, RelationNotFoundError
from cqrs_ddd_queryable.metadata import MetadataRegistry


@pytest.fixture
def resolver(registry: MetadataRegistry) -> RelationResolver:
    return RelationResolver(registry.get(User), AliasRegistry("user"), JoinPlan())


def test_synthesized_alias_is_root_plus_underscored_path() -> None:
    aliases = AliasRegistry("user")
    assert aliases.synthesize("posts") == "user_posts"
    assert aliases.synthesize("posts.comments") == "user_posts_comments"


def test_register_is_idempotent_per_path() -> None:
    aliases = AliasRegistry("u")
    first = aliases.register("u_posts", "posts")
    assert aliases.register("other", "posts") is first
    assert "posts" in aliases
    assert aliases.alias_for("posts") == "u_posts"
    assert aliases.alias_for("") == "u"


def test_register_rejects_alias_bound_to_another_path() -> None:
    aliases = AliasRegistry("u")
    aliases.register("p", "posts")
    with pytest.raises(AliasConflictError) as exc_info:
        aliases.register("p", "profile")
    assert exc_info.value.existing_path == "posts"
    assert exc_info.value.new_path == "profile"


def test_root_alias_cannot_be_reused() -> None:
    aliases = AliasRegistry("u")
    with pytest.raises(AliasConflictError):
        aliases.register("u", "posts")


def test_resolve_walks_and_joins_every_segment(resolver: RelationResolver) -> None:
    entry = resolver.resolve("posts.comments")
    assert entry.alias == "user_posts_comments"
    joins = list(resolver.joins)
    assert [(j.parent_alias, j.alias, j.path) for j in joins] == [
        ("user", "user_posts", "posts"),
        ("user_posts", "user_posts_comments", "posts.comments"),
    ]
    assert joins[0].relation.uselist
    assert not any(j.select for j in joins)


def test_resolve_is_idempotent(resolver: RelationResolver) -> None:
    first = resolver.resolve("posts")
    again = resolver.resolve("posts")
    resolver.resolve("posts.comments")
    assert first == again
    assert len(resolver.joins) == 2
    assert len(resolver.aliases.entries) == 2


def test_selecting_resolution_upgrades_existing_joins(
    resolver: RelationResolver,
) -> None:
    resolver.resolve("posts.comments")
    resolver.resolve("posts.comments", select=True)
    assert all(j.select for j in resolver.joins)
    assert len(resolver.joins) == 2


def test_alias_override_applies_to_last_segment(resolver: RelationResolver) -> None:
    entry = resolver.resolve("posts.comments", alias_override="c")
    assert entry.alias == "c"
    assert resolver.aliases.alias_for("posts") == "user_posts"
    assert resolver.joins.get("c").parent_alias == "user_posts"  # type: ignore[union-attr]


def test_alias_override_keeps_first_binding(resolver: RelationResolver) -> None:
    resolver.resolve("posts")
    assert resolver.resolve("posts", alias_override="p").alias == "user_posts"


def test_unknown_segment_lists_relations(resolver: RelationResolver) -> None:
    with pytest.raises(RelationNotFoundError) as exc_info:
        resolver.resolve("posts.tags")
    err = exc_info.value
    assert err.relation == "tags"
    assert err.entity_name == "Post"
    assert sorted(err.available_relations) == ["author", "comments"]
    assert err.full_path == "posts.tags"


def test_entity_for_does_not_join(resolver: RelationResolver) -> None:
    assert resolver.entity_for("posts.author").name == "User"
    assert len(resolver.joins) == 0


def test_cyclic_paths_get_distinct_aliases(resolver: RelationResolver) -> None:
    entry = resolver.resolve("posts.author.posts")
    assert entry.alias == "user_posts_author_posts"
    assert len({j.alias for j in resolver.joins}) == 3


def test_join_plan_never_duplicates_an_alias(resolver: RelationResolver) -> None:
    plan = JoinPlan()
    resolver.resolve("profile")
    join = resolver.joins.get("user_profile")
    assert join is not None
    plan.add(join)
    plan.add(join)
    assert len(plan) == 1


def test_joins_are_logged(
    resolver: RelationResolver, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG, logger="cqrs_ddd_queryable.aliases"):
        resolver.resolve("posts")
    assert "user_posts" in caplog.text
