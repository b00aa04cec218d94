"""
Projection planning.

Inclusions create :class:`RelationProjection` nodes (and selecting joins);
selections record which columns each node emits and under which output
key.  Selections never join: a selected relation must have been included.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .ast import ColumnSelection, IncludeNode, RelationSelection, SelectionNode
from .exceptions import ProjectionRelationNotIncludedError
from .plan import ProjectionPlan, RelationProjection

if TYPE_CHECKING:
    from .aliases import RelationResolver


class ProjectionPlanner:
    """Builds a :class:`ProjectionPlan` for one compilation context."""

    def __init__(
        self, resolver: RelationResolver, plan: ProjectionPlan | None = None
    ) -> None:
        self.resolver = resolver
        self.plan = plan or ProjectionPlan()

    def plan_inclusion(
        self,
        nodes: tuple[IncludeNode, ...],
        alias: str | None = None,
        path: str = "",
    ) -> None:
        """Join every included relation with a selecting join."""
        parent = self.plan.node(path) if path else None
        container = parent.children if parent is not None else self.plan.relations

        for node in nodes:
            relation_path = f"{path}.{node.relation}" if path else node.relation
            entry = self.resolver.resolve(
                relation_path, alias, select=True, alias_override=node.as_
            )
            projection = container.get(node.relation)
            if projection is None:
                projection = RelationProjection(
                    name=node.relation,
                    path=relation_path,
                    parent_path=path,
                    alias=entry.alias,
                    output_key=node.as_ or node.relation,
                )
                container[node.relation] = projection
            elif node.as_:
                projection.output_key = node.as_

            if node.children:
                self.plan_inclusion(node.children, entry.alias, relation_path)

    def plan_selection(
        self, nodes: tuple[SelectionNode, ...], path: str = ""
    ) -> None:
        """
        Record selected columns; later entries overwrite earlier ones.

        Raises:
            ProjectionRelationNotIncludedError: A selected relation was
                never included.
        """
        for node in nodes:
            if isinstance(node, ColumnSelection):
                if path:
                    target = self.plan.node(path)
                    if target is None:
                        raise ProjectionRelationNotIncludedError(path)
                    target.columns[node.field] = node.output_key
                else:
                    self.plan.root_columns[node.field] = node.output_key
            elif isinstance(node, RelationSelection):
                relation_path = f"{path}.{node.relation}" if path else node.relation
                if self.plan.node(relation_path) is None:
                    raise ProjectionRelationNotIncludedError(relation_path)
                self.plan_selection(node.children, relation_path)
