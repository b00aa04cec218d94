"""
Projection plan: the nested output shape of one compiled query.

Built by :class:`~.projection.ProjectionPlanner`, read by the materializer
and by hydration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class RelationProjection:
    """
    Projection of one included relation.

    An empty ``columns`` map passes every scalar column through.
    """

    name: str
    path: str
    parent_path: str
    alias: str
    output_key: str
    columns: dict[str, str] = field(default_factory=dict)
    children: dict[str, RelationProjection] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "alias": self.alias,
            "output_key": self.output_key,
            "columns": dict(self.columns),
            "children": {k: v.to_dict() for k, v in self.children.items()},
        }


@dataclass
class ProjectionPlan:
    """
    Attributes:
        root_columns: ``{field: output_key}`` for the root entity; empty
            means every root column passes through.
        relations: Included relations of the root, by relation name.
    """

    root_columns: dict[str, str] = field(default_factory=dict)
    relations: dict[str, RelationProjection] = field(default_factory=dict)

    def node(self, path: str) -> RelationProjection | None:
        """Return the relation node at the dotted *path*, if planned."""
        current: RelationProjection | None = None
        children = self.relations
        for segment in path.split("."):
            current = children.get(segment)
            if current is None:
                return None
            children = current.children
        return current

    def walk(self) -> Iterator[RelationProjection]:
        stack = list(reversed(self.relations.values()))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children.values()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_columns": dict(self.root_columns),
            "relations": {k: v.to_dict() for k, v in self.relations.items()},
        }
