"""
ORM instance -> RawRow.

Reads only attributes the joined query already loaded, using
``sqlalchemy.inspect(instance).unloaded``; no lazy load is ever triggered.
Only relations in the projection plan are followed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..metadata import EntityMetadata
    from ..plan import ProjectionPlan, RelationProjection


def hydrate(
    instance: Any, entity: EntityMetadata, plan: ProjectionPlan
) -> dict[str, Any]:
    """Return the loaded columns and planned relations of *instance*."""
    return _hydrate(instance, entity, plan.relations)


def _hydrate(
    instance: Any,
    entity: EntityMetadata,
    relations: Mapping[str, RelationProjection],
) -> dict[str, Any]:
    unloaded = sa_inspect(instance).unloaded
    row = {
        attr: getattr(instance, attr)
        for attr in entity.columns
        if attr not in unloaded
    }

    for name, projection in relations.items():
        relation = entity.relation(name)
        if relation is None or name in unloaded:
            continue
        value = getattr(instance, name)
        if value is None:
            row[name] = None
        elif relation.uselist:
            row[name] = [
                _hydrate(item, relation.target, projection.children) for item in value
            ]
        else:
            row[name] = _hydrate(value, relation.target, projection.children)
    return row
