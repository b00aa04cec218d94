"""
Alias registry, join plan and relation resolver.

One :class:`AliasRegistry` / :class:`JoinPlan` pair exists per compilation
context.  Predicates, selections and inclusions all go through the same
:class:`RelationResolver`, so a relation path is joined at most once and
always under the same alias regardless of which of them reached it first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .exceptions import AliasConflictError, RelationNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .metadata import EntityMetadata, RelationMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasEntry:
    alias: str
    path: str


@dataclass(frozen=True)
class JoinSpec:
    """
    One left join of the compiled query.

    Attributes:
        parent_alias: Alias of the entity owning the relation.
        relation: The joined relation.
        alias: Alias of the joined entity.
        path: Dotted relation path from the root entity.
        select: ``True`` when the joined entity is loaded into the result
            (an inclusion), ``False`` for a filter-only join.
    """

    parent_alias: str
    relation: RelationMetadata
    alias: str
    path: str
    select: bool = False

    @property
    def parent_path(self) -> str:
        return self.path.rpartition(".")[0]


class AliasRegistry:
    """Maps relation paths to aliases; one alias per path, one path per alias."""

    def __init__(self, root_alias: str) -> None:
        self.root_alias = root_alias
        self._by_path: dict[str, AliasEntry] = {}
        self._paths_by_alias: dict[str, str] = {root_alias: ""}

    def get(self, path: str) -> AliasEntry | None:
        return self._by_path.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def alias_for(self, path: str) -> str:
        """Alias of *path*; the root alias for the empty path."""
        if not path:
            return self.root_alias
        entry = self._by_path.get(path)
        if entry is None:
            raise KeyError(path)
        return entry.alias

    def synthesize(self, path: str) -> str:
        return f"{self.root_alias}_{path.replace('.', '_')}"

    def register(self, alias: str, path: str) -> AliasEntry:
        """
        Bind *alias* to *path*.

        Re-registering a bound path returns the existing entry unchanged.

        Raises:
            AliasConflictError: If *alias* is already bound to another path.
        """
        existing = self._by_path.get(path)
        if existing is not None:
            return existing

        bound = self._paths_by_alias.get(alias)
        if bound is not None and bound != path:
            raise AliasConflictError(alias, bound or "<root>", path)

        entry = AliasEntry(alias=alias, path=path)
        self._by_path[path] = entry
        self._paths_by_alias[alias] = path
        return entry

    @property
    def entries(self) -> list[AliasEntry]:
        return list(self._by_path.values())


class JoinPlan:
    """Joins in creation order, keyed by alias."""

    def __init__(self) -> None:
        self._joins: dict[str, JoinSpec] = {}

    def add(self, join: JoinSpec) -> JoinSpec:
        """
        Add *join*; an existing alias is never joined twice.

        Adding a selecting join over an existing plain join upgrades it.
        """
        existing = self._joins.get(join.alias)
        if existing is None:
            self._joins[join.alias] = join
            return join
        if join.select and not existing.select:
            existing = replace(existing, select=True)
            self._joins[join.alias] = existing
        return existing

    def get(self, alias: str) -> JoinSpec | None:
        return self._joins.get(alias)

    def __contains__(self, alias: object) -> bool:
        return alias in self._joins

    def __iter__(self) -> Iterator[JoinSpec]:
        return iter(list(self._joins.values()))

    def __len__(self) -> int:
        return len(self._joins)

    def __bool__(self) -> bool:
        return bool(self._joins)


class RelationResolver:
    """
    Resolves dotted relation paths into aliases, creating joins on demand.

    Args:
        root_entity: Metadata of the query's root entity.
        aliases: The context's alias registry.
        joins: The context's join plan.
    """

    def __init__(
        self,
        root_entity: EntityMetadata,
        aliases: AliasRegistry,
        joins: JoinPlan,
    ) -> None:
        self.root_entity = root_entity
        self.aliases = aliases
        self.joins = joins
        self._entities: dict[str, EntityMetadata] = {"": root_entity}

    def resolve(
        self,
        path: str,
        current_alias: str | None = None,
        *,
        select: bool = False,
        alias_override: str | None = None,
    ) -> AliasEntry:
        """
        Return the alias entry for *path*, joining unresolved segments.

        Args:
            path: Dotted relation path from the root entity.
            current_alias: Alias the walk starts from when no prefix of
                *path* is resolved yet; defaults to the root alias.
            select: Load the joined entities into the result.  Upgrades
                every join along *path*.
            alias_override: Explicit alias for the last segment.

        Raises:
            RelationNotFoundError: A segment names no relation of its entity.
            AliasConflictError: *alias_override* is bound to another path.
        """
        segments = path.split(".")

        start = len(segments)
        while start > 0 and ".".join(segments[:start]) not in self.aliases:
            start -= 1

        prefix = ".".join(segments[:start])
        entity = self._entities[prefix]
        parent_alias = (
            self.aliases.alias_for(prefix)
            if prefix
            else current_alias or self.aliases.root_alias
        )

        for index in range(start, len(segments)):
            segment = segments[index]
            relation = entity.relation(segment)
            if relation is None:
                raise RelationNotFoundError(
                    segment, entity.name, entity.relation_names, full_path=path
                )

            segment_path = ".".join(segments[: index + 1])
            is_last = index == len(segments) - 1
            alias = (
                alias_override
                if is_last and alias_override
                else self.aliases.synthesize(segment_path)
            )
            entry = self.aliases.register(alias, segment_path)
            self.joins.add(
                JoinSpec(
                    parent_alias=parent_alias,
                    relation=relation,
                    alias=entry.alias,
                    path=segment_path,
                    select=select,
                )
            )
            logger.debug(
                "Joined '%s' AS %s (parent %s, select=%s)",
                segment_path,
                entry.alias,
                parent_alias,
                select,
            )
            self._entities[segment_path] = relation.target
            entity = relation.target
            parent_alias = entry.alias

        if select:
            self._select_along(segments)

        resolved = self.aliases.get(path)
        if resolved is None:
            raise KeyError(path)
        if alias_override and resolved.alias != alias_override:
            logger.debug(
                "'%s' is already joined AS %s; keeping it over '%s'",
                path,
                resolved.alias,
                alias_override,
            )
        return resolved

    def _select_along(self, segments: list[str]) -> None:
        for index in range(1, len(segments) + 1):
            entry = self.aliases.get(".".join(segments[:index]))
            if entry is None:
                continue
            join = self.joins.get(entry.alias)
            if join is not None and not join.select:
                self.joins.add(replace(join, select=True))

    def entity_for(self, path: str) -> EntityMetadata:
        """
        Metadata of the entity at *path*, without creating joins.

        Raises:
            RelationNotFoundError: A segment names no relation of its entity.
        """
        if path in self._entities:
            return self._entities[path]
        entity = self.root_entity
        for segment in path.split("."):
            relation = entity.relation(segment)
            if relation is None:
                raise RelationNotFoundError(
                    segment, entity.name, entity.relation_names, full_path=path
                )
            entity = relation.target
        return entity
