"""
Compile a tagged predicate tree into parameterised filter text.

The compiler walks the tree produced by :func:`~.ast.parse_predicate` and
delegates every ``{operator: value}`` entry to the operator table
(:class:`~.strategy.FilterOperatorRegistry`).  Relation conditions are
resolved through the context's :class:`~.aliases.RelationResolver`, which
joins the relation (plain left join) if nothing joined it before.

Example::

    compile_predicate({"name": {"eq": "John"}}, user_meta, alias="u")
    # CompiledPredicate(text="u.name = :name_0", params={"name_0": "John"})
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .aliases import AliasRegistry, JoinPlan, JoinSpec, RelationResolver
from .ast import (
    AndCondition,
    FieldComparison,
    FieldCondition,
    FieldsCondition,
    NotCondition,
    OrComparison,
    OrCondition,
    PredicateNode,
    RelationCondition,
    parse_predicate,
)
from .operators_sql import DEFAULT_REGISTRY
from .strategy import ParameterBinder

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .metadata import EntityMetadata
    from .strategy import FilterOperatorRegistry

logger = logging.getLogger(__name__)


def _verbatim(identifier: str) -> str:
    return identifier


@dataclass(frozen=True)
class CompiledPredicate:
    """
    Filter text plus the parameters it references.

    Attributes:
        text: Filter expression, empty when there is nothing to filter.
        params: ``{name: value}`` for every placeholder in *text*.
        expanding: Parameter names bound to lists (``IN :name``).
        joins: Joins the filter depends on, in creation order.
    """

    text: str
    params: dict[str, Any] = field(default_factory=dict)
    expanding: frozenset[str] = frozenset()
    joins: tuple[JoinSpec, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.text


class PredicateCompiler:
    """
    Renders predicate nodes for one compilation context.

    Parameter names are ``<field>_<n>`` with ``n`` taken from a counter
    shared by every :meth:`render` call of this instance, so filters on the
    same field at different nesting levels never collide.

    Aliases and column names pass through *quote* before they are written
    into the text; backends supply their dialect's identifier quoting so
    reserved words such as ``user`` stay valid.
    """

    def __init__(
        self,
        resolver: RelationResolver,
        registry: FilterOperatorRegistry | None = None,
        binder: ParameterBinder | None = None,
        quote: Callable[[str], str] | None = None,
    ) -> None:
        self.resolver = resolver
        self.registry = registry or DEFAULT_REGISTRY
        self.binder = binder or ParameterBinder()
        self.quote = quote or _verbatim
        self._counter = itertools.count()

    def compile(
        self, node: PredicateNode, alias: str | None = None, path: str = ""
    ) -> CompiledPredicate:
        text = self.render(node, alias, path)
        return self.result(text)

    def result(self, text: str) -> CompiledPredicate:
        """Snapshot *text* with everything bound so far."""
        compiled = CompiledPredicate(
            text=text,
            params=dict(self.binder.params),
            expanding=frozenset(self.binder.expanding),
            joins=tuple(self.resolver.joins),
        )
        if text:
            logger.debug(
                "Compiled predicate: %s (params: %s)", text, sorted(compiled.params)
            )
        return compiled

    def render(
        self, node: PredicateNode, alias: str | None = None, path: str = ""
    ) -> str:
        """Render *node* relative to *alias* / *path*; may create joins."""
        current = alias or self.resolver.aliases.root_alias

        if isinstance(node, FieldCondition):
            column = f"{self.quote(current)}.{self.quote(node.column)}"
            return " AND ".join(
                self._render_comparison(c, column, node.field)
                for c in node.comparisons
            )

        if isinstance(node, RelationCondition):
            relation_path = f"{path}.{node.relation}" if path else node.relation
            entry = self.resolver.resolve(relation_path, current)
            return self.render(node.condition, entry.alias, relation_path)

        if isinstance(node, FieldsCondition):
            return " AND ".join(self._render_children(node.entries, current, path))

        if isinstance(node, AndCondition):
            parts = self._render_children(node.children, current, path)
            return f"({' AND '.join(parts)})" if parts else ""

        if isinstance(node, OrCondition):
            parts = self._render_children(node.children, current, path)
            return f"({' OR '.join(parts)})" if parts else ""

        if isinstance(node, NotCondition):
            inner = self.render(node.child, current, path)
            return f"NOT ({inner})" if inner else ""

        raise TypeError(f"Unknown predicate node: {type(node).__name__}")

    def _render_children(
        self, children: tuple[PredicateNode, ...], alias: str, path: str
    ) -> list[str]:
        rendered = (self.render(child, alias, path) for child in children)
        return [part for part in rendered if part]

    def _render_comparison(
        self, comparison: FieldComparison, column: str, field_name: str
    ) -> str:
        if isinstance(comparison, OrComparison):
            alternatives = [
                " AND ".join(
                    self._render_comparison(c, column, field_name) for c in alt
                )
                for alt in comparison.alternatives
            ]
            return f"({' OR '.join(alternatives)})"

        key = f"{field_name}_{next(self._counter)}"
        return self.registry.render(
            comparison.op, column, key, comparison.value, self.binder
        )


def compile_predicate(
    data: Mapping[str, Any],
    entity: EntityMetadata,
    *,
    alias: str | None = None,
    registry: FilterOperatorRegistry | None = None,
    quote: Callable[[str], str] | None = None,
) -> CompiledPredicate:
    """
    Parse and compile *data* in a fresh compilation context.

    Args:
        data: Predicate object, e.g. ``{"age": {"gte": 18}}``.
        entity: Metadata of the root entity.
        alias: Root alias; defaults to the lower-cased entity name.
        registry: Operator table; defaults to ``DEFAULT_REGISTRY``.
        quote: Identifier quoting for aliases and column names.

    Raises:
        UnsupportedOperatorError: Unknown operator token.
        RelationNotFoundError: Unknown relation path.
        FieldNotFoundError: Unknown field.
    """
    node = parse_predicate(data, entity)
    aliases = AliasRegistry(alias or entity.name.lower())
    resolver = RelationResolver(entity, aliases, JoinPlan())
    return PredicateCompiler(resolver, registry, quote=quote).compile(node)
