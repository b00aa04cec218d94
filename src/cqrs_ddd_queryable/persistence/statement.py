"""
Render a :class:`~cqrs_ddd_queryable.query_spec.CompiledQuery` as
SQLAlchemy statements.

Every alias of the compiled plan becomes an ``aliased()`` entity with the
same name, so the compiled filter text (``user_posts.published = :p_0``)
can be attached verbatim through ``text().bindparams()``.  Selecting joins
are loaded with ``contains_eager`` chains; filter-only joins are plain
``outerjoin`` s.

When a paged query has joins, the page is cut in a subquery over root
primary keys, so ``limit`` counts root entities rather than joined rows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import bindparam, delete, func, select, text, tuple_, update
from sqlalchemy.orm import aliased, contains_eager

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import ColumnElement, Delete, Select, TextClause, Update

    from ..compiler import CompiledPredicate
    from ..query_spec import CompiledQuery


def filter_clause(predicate: CompiledPredicate) -> TextClause | None:
    """Bind the compiled filter text, or ``None`` when nothing filters."""
    if predicate.is_empty:
        return None
    return text(predicate.text).bindparams(
        *(
            bindparam(name, value, expanding=name in predicate.expanding)
            for name, value in predicate.params.items()
        )
    )


def _aliased_graph(compiled: CompiledQuery, model: type[Any]) -> dict[str, Any]:
    targets: dict[str, Any] = {
        compiled.root_alias: aliased(model, name=compiled.root_alias)
    }
    for join in compiled.joins:
        targets[join.alias] = aliased(join.relation.target.class_, name=join.alias)
    return targets


def _apply_joins(
    stmt: Select[Any], compiled: CompiledQuery, targets: dict[str, Any]
) -> Select[Any]:
    for join in compiled.joins:
        parent = targets[join.parent_alias]
        stmt = stmt.outerjoin(
            getattr(parent, join.relation.name).of_type(targets[join.alias])
        )
    clause = filter_clause(compiled.predicate)
    if clause is not None:
        stmt = stmt.where(clause)
    return stmt


def _eager_options(compiled: CompiledQuery, targets: dict[str, Any]) -> list[Any]:
    by_path = {join.path: join for join in compiled.joins}
    options: list[Any] = []
    for join in compiled.joins:
        if not join.select:
            continue
        chain = []
        path = join.path
        while path:
            chain.append(by_path[path])
            path = by_path[path].parent_path
        load: Any = None
        for link in reversed(chain):
            attr = getattr(targets[link.parent_alias], link.relation.name).of_type(
                targets[link.alias]
            )
            load = contains_eager(attr) if load is None else load.contains_eager(attr)
        options.append(load)
    return options


def _order_clauses(
    compiled: CompiledQuery, targets: dict[str, Any], *, aggregate: bool = False
) -> list[ColumnElement[Any]]:
    clauses = []
    for order in compiled.order_by:
        column = getattr(targets[order.alias], order.field)
        if aggregate and order.path:
            # grouped by root key: joined columns need an aggregate
            column = func.max(column) if order.descending else func.min(column)
        clauses.append(column.desc() if order.descending else column.asc())
    return clauses


def _key_expression(columns: list[Any]) -> Any:
    return columns[0] if len(columns) == 1 else tuple_(*columns)


def _root_keys(
    compiled: CompiledQuery, model: type[Any]
) -> tuple[Select[Any], dict[str, Any], list[Any]]:
    targets = _aliased_graph(compiled, model)
    root = targets[compiled.root_alias]
    keys = [getattr(root, pk) for pk in compiled.entity.primary_key]
    stmt = _apply_joins(select(*keys).select_from(root), compiled, targets)
    return stmt, targets, keys


def root_key_select(compiled: CompiledQuery, model: type[Any]) -> Select[Any]:
    """Filtered select of root primary keys, with its own alias set."""
    stmt, _, _ = _root_keys(compiled, model)
    return stmt


def _paged_keys(compiled: CompiledQuery, model: type[Any]) -> Select[Any]:
    stmt, targets, keys = _root_keys(compiled, model)
    stmt = stmt.group_by(*keys).order_by(
        *_order_clauses(compiled, targets, aggregate=True)
    )
    if compiled.offset is not None:
        stmt = stmt.offset(compiled.offset)
    if compiled.limit is not None:
        stmt = stmt.limit(compiled.limit)
    return stmt.correlate(None)


def build_select(compiled: CompiledQuery, model: type[Any]) -> Select[Any]:
    """The list query: root entities with included relations eagerly loaded."""
    targets = _aliased_graph(compiled, model)
    root = targets[compiled.root_alias]

    stmt = _apply_joins(select(root), compiled, targets)
    stmt = stmt.options(*_eager_options(compiled, targets))

    if compiled.is_paged and compiled.joins:
        keys = [getattr(root, pk) for pk in compiled.entity.primary_key]
        stmt = stmt.where(_key_expression(keys).in_(_paged_keys(compiled, model)))
        stmt = stmt.order_by(*_order_clauses(compiled, targets))
    else:
        stmt = stmt.order_by(*_order_clauses(compiled, targets))
        if compiled.offset is not None:
            stmt = stmt.offset(compiled.offset)
        if compiled.limit is not None:
            stmt = stmt.limit(compiled.limit)

    if compiled.distinct:
        stmt = stmt.distinct()
    return stmt.execution_options(populate_existing=True)


def build_count(compiled: CompiledQuery, model: type[Any]) -> Select[Any]:
    """Number of distinct root entities matching the filter."""
    keys = root_key_select(compiled, model).distinct().subquery()
    return select(func.count()).select_from(keys)


def build_exists(compiled: CompiledQuery, model: type[Any]) -> Select[Any]:
    return select(root_key_select(compiled, model).exists())


def build_delete(compiled: CompiledQuery, model: type[Any]) -> Delete:
    """``DELETE FROM root WHERE pk IN (<filtered key select>)``."""
    keys = [getattr(model, pk) for pk in compiled.entity.primary_key]
    subquery = root_key_select(compiled, model).correlate(None)
    return (
        delete(model)
        .where(_key_expression(keys).in_(subquery))
        .execution_options(synchronize_session=False)
    )


def build_update(
    model: type[Any], key_values: Mapping[str, Any], values: Mapping[str, Any]
) -> Update:
    """``UPDATE root SET ... WHERE pk = :id`` over mapped attribute names."""
    return (
        update(model)
        .where(*(getattr(model, pk) == value for pk, value in key_values.items()))
        .values({getattr(model, name): value for name, value in values.items()})
        .execution_options(synchronize_session=False)
    )
