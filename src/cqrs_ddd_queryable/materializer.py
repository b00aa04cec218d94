"""Fold hydrated rows into the nested shape a projection plan describes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .plan import ProjectionPlan, RelationProjection


def materialize(row: Mapping[str, Any], plan: ProjectionPlan) -> dict[str, Any]:
    """
    Shape one hydrated row according to *plan*.

    Only relations present in the plan are visited, so cyclic entity
    graphs terminate.  Relations that are ``None`` or missing on the row
    are left out of the output; empty collections are kept.
    """
    return _materialize(row, plan.root_columns, plan.relations)


def _materialize(
    row: Mapping[str, Any],
    columns: Mapping[str, str],
    relations: Mapping[str, RelationProjection],
) -> dict[str, Any]:
    if columns:
        output = {key: row.get(name) for name, key in columns.items()}
    else:
        output = {k: v for k, v in row.items() if k not in relations}

    for name, relation in relations.items():
        value = row.get(name)
        if value is None:
            continue
        if isinstance(value, Mapping):
            output[relation.output_key] = _materialize(
                value, relation.columns, relation.children
            )
        else:
            output[relation.output_key] = [
                _materialize(item, relation.columns, relation.children)
                for item in value
            ]
    return output
