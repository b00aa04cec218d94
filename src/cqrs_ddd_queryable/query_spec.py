"""
Immutable query description and its compilation.

``QuerySpec`` holds parsed predicate, inclusion and selection trees plus
ordering and paging.  Every ``with_*`` method returns a new instance, so a
spec can be shared, cached or extended concurrently.

``compile_query_spec`` turns a spec into a :class:`CompiledQuery` inside a
fresh compilation context (alias registry, join plan, projection plan,
predicate compiler).  Stages always run in the same order::

    inclusions -> selections -> predicates -> ordering

so the aliases a query gets never depend on the order builder methods
were called in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .aliases import AliasRegistry, JoinPlan, JoinSpec, RelationResolver
from .compiler import CompiledPredicate, PredicateCompiler
from .exceptions import FieldNotFoundError, ValidationError
from .plan import ProjectionPlan
from .projection import ProjectionPlanner

if TYPE_CHECKING:
    from collections.abc import Callable

    from .ast import IncludeNode, PredicateNode, SelectionNode
    from .metadata import EntityMetadata
    from .strategy import FilterOperatorRegistry

logger = logging.getLogger(__name__)

ASC = "asc"
DESC = "desc"


def _normalize_direction(direction: str) -> str:
    value = direction.lower()
    if value not in (ASC, DESC):
        raise ValidationError(
            f"Sort direction must be 'asc' or 'desc', got {direction!r}"
        )
    return value


@dataclass(frozen=True)
class QuerySpec:
    """
    Attributes:
        predicates: Predicate trees, AND-ed together.
        inclusions: Inclusion nodes in call order.
        selections: Selection nodes in call order; later entries win.
        order_by: ``(field, direction)`` pairs; the first is the primary key
            of the sort.  Fields may be dotted relation paths.
        offset: Root entities to skip.
        limit: Maximum root entities to return.
        distinct: Emit ``SELECT DISTINCT``.
    """

    predicates: tuple[PredicateNode, ...] = ()
    inclusions: tuple[IncludeNode, ...] = ()
    selections: tuple[SelectionNode, ...] = ()
    order_by: tuple[tuple[str, str], ...] = ()
    offset: int | None = None
    limit: int | None = None
    distinct: bool = False

    def with_predicate(self, node: PredicateNode) -> QuerySpec:
        return replace(self, predicates=(*self.predicates, node))

    def with_inclusions(self, nodes: tuple[IncludeNode, ...]) -> QuerySpec:
        return replace(self, inclusions=(*self.inclusions, *nodes))

    def with_selections(self, nodes: tuple[SelectionNode, ...]) -> QuerySpec:
        return replace(self, selections=(*self.selections, *nodes))

    def with_ordering(self, field_name: str, direction: str = ASC) -> QuerySpec:
        """Return a copy ordered by *field_name* only."""
        return replace(
            self, order_by=((field_name, _normalize_direction(direction)),)
        )

    def then_ordering(self, field_name: str, direction: str = ASC) -> QuerySpec:
        """Return a copy with *field_name* appended as a secondary sort key."""
        return replace(
            self,
            order_by=(*self.order_by, (field_name, _normalize_direction(direction))),
        )

    def with_pagination(
        self,
        limit: int | None = None,
        offset: int | None = None,
    ) -> QuerySpec:
        """Return a copy with updated pagination parameters."""
        return replace(
            self,
            limit=limit if limit is not None else self.limit,
            offset=offset if offset is not None else self.offset,
        )

    def with_distinct(self, distinct: bool = True) -> QuerySpec:
        return replace(self, distinct=distinct)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dictionary."""
        result: dict[str, Any] = {}
        if self.predicates:
            result["where"] = [p.to_dict() for p in self.predicates]
        if self.inclusions:
            result["include"] = [i.to_dict() for i in self.inclusions]
        if self.selections:
            result["select"] = [s.to_dict() for s in self.selections]
        if self.order_by:
            result["order_by"] = [
                f"-{name}" if direction == DESC else name
                for name, direction in self.order_by
            ]
        if self.offset is not None:
            result["offset"] = self.offset
        if self.limit is not None:
            result["limit"] = self.limit
        if self.distinct:
            result["distinct"] = True
        return result


@dataclass(frozen=True)
class OrderClause:
    alias: str
    field: str
    path: str = ""
    descending: bool = False


@dataclass(frozen=True)
class CompiledQuery:
    """Everything a backend needs to build and run one statement."""

    entity: EntityMetadata
    root_alias: str
    joins: tuple[JoinSpec, ...]
    predicate: CompiledPredicate
    projection: ProjectionPlan
    order_by: tuple[OrderClause, ...] = ()
    offset: int | None = None
    limit: int | None = None
    distinct: bool = False
    aliases: dict[str, str] = field(default_factory=dict)

    @property
    def is_paged(self) -> bool:
        return self.offset is not None or self.limit is not None


def compile_query_spec(
    spec: QuerySpec,
    entity: EntityMetadata,
    root_alias: str | None = None,
    registry: FilterOperatorRegistry | None = None,
    *,
    stable_ordering: bool = True,
    quote: Callable[[str], str] | None = None,
) -> CompiledQuery:
    """
    Compile *spec* against *entity* in a fresh compilation context.

    *quote* is applied to every alias and column name written into the
    filter text; without it identifiers are emitted as they are.

    Raises:
        ProjectionRelationNotIncludedError: A selection names a relation
            that no inclusion joined.
        RelationNotFoundError: Unknown relation in a predicate or ordering.
        FieldNotFoundError: Unknown ordering field.
        UnsupportedOperatorError: Operator missing from *registry*.
    """
    aliases = AliasRegistry(root_alias or entity.name.lower())
    joins = JoinPlan()
    resolver = RelationResolver(entity, aliases, joins)
    planner = ProjectionPlanner(resolver)
    compiler = PredicateCompiler(resolver, registry, quote=quote)

    planner.plan_inclusion(spec.inclusions)
    planner.plan_selection(spec.selections)

    fragments = [text for node in spec.predicates if (text := compiler.render(node))]
    if len(fragments) > 1:
        text = " AND ".join(f"({fragment})" for fragment in fragments)
    else:
        text = fragments[0] if fragments else ""
    predicate = compiler.result(text)

    order_by = [_compile_order(resolver, name, d) for name, d in spec.order_by]
    if stable_ordering:
        ordered = {(c.path, c.field) for c in order_by}
        order_by.extend(
            OrderClause(alias=aliases.root_alias, field=pk)
            for pk in entity.primary_key
            if ("", pk) not in ordered
        )

    compiled = CompiledQuery(
        entity=entity,
        root_alias=aliases.root_alias,
        joins=tuple(joins),
        predicate=predicate,
        projection=planner.plan,
        order_by=tuple(order_by),
        offset=spec.offset,
        limit=spec.limit,
        distinct=spec.distinct,
        aliases={e.path: e.alias for e in aliases.entries},
    )
    logger.debug(
        "Compiled query on %s: %d join(s), filter=%r, order=%s",
        entity.name,
        len(compiled.joins),
        predicate.text,
        [(c.alias, c.field, c.descending) for c in compiled.order_by],
    )
    return compiled


def _compile_order(
    resolver: RelationResolver, name: str, direction: str
) -> OrderClause:
    path, _, field_name = name.rpartition(".")
    owner = resolver.entity_for(path) if path else resolver.root_entity
    if not owner.has_column(field_name):
        raise FieldNotFoundError(
            field_name, owner.name, list(owner.columns), full_path=name
        )
    alias = resolver.resolve(path).alias if path else resolver.aliases.root_alias
    return OrderClause(
        alias=alias, field=field_name, path=path, descending=direction == DESC
    )
