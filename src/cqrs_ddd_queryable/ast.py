"""
Tagged predicate, selection and inclusion trees.

The JSON-shaped DSL is parsed against :class:`EntityMetadata` into frozen
nodes.  Whether a key is a relation reference or a field comparison is
decided from the entity's static relation metadata at parse time, so the
compiler and planner never inspect value shapes.

Predicate DSL::

    {"name": {"eq": "John"}}                          # FieldCondition
    {"posts": {"published": {"eq": True}}}           # RelationCondition
    {"and": [{...}, {...}]} / {"or": [...]} / {"not": {...}}
    {"age": {"or": [{"lt": 18}, {"gte": 65}]}}       # intra-field OR

Selection DSL::

    {"name": True, "email": {"as": "mail"}, "posts": {"title": True}}

Inclusion DSL::

    {"posts": True, "profile": {"as": "p", "include": {...}}}
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from .exceptions import (
    FieldNotFoundError,
    RelationNotFoundError,
    UnsupportedOperatorError,
    ValidationError,
)
from .operators import (
    LOGICAL_TOKENS,
    OPERATOR_TOKENS,
    LogicalOperator,
    QueryOperator,
    is_operator_token,
    normalize_token,
)

if TYPE_CHECKING:
    from .metadata import EntityMetadata

# ---------------------------------------------------------------------------
# Predicate nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Comparison:
    """One ``{operator: value}`` entry of a field comparison."""

    op: QueryOperator
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {self.op.value: self.value}


@dataclass(frozen=True)
class OrComparison:
    """Intra-field ``or``: alternatives against the same column."""

    alternatives: tuple[tuple[FieldComparison, ...], ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            QueryOperator.OR.value: [
                _merge_dicts(c.to_dict() for c in alt) for alt in self.alternatives
            ]
        }


FieldComparison = Union[Comparison, OrComparison]


@dataclass(frozen=True)
class FieldCondition:
    """Comparisons on one column of the current entity, AND-ed."""

    field: str
    column: str
    comparisons: tuple[FieldComparison, ...]

    def to_dict(self) -> dict[str, Any]:
        return {self.field: _merge_dicts(c.to_dict() for c in self.comparisons)}


@dataclass(frozen=True)
class RelationCondition:
    """A nested predicate evaluated against a related entity."""

    relation: str
    condition: PredicateNode

    def to_dict(self) -> dict[str, Any]:
        return {self.relation: self.condition.to_dict()}


@dataclass(frozen=True)
class AndCondition:
    children: tuple[PredicateNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return {LogicalOperator.AND.value: [c.to_dict() for c in self.children]}


@dataclass(frozen=True)
class OrCondition:
    children: tuple[PredicateNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return {LogicalOperator.OR.value: [c.to_dict() for c in self.children]}


@dataclass(frozen=True)
class NotCondition:
    child: PredicateNode

    def to_dict(self) -> dict[str, Any]:
        return {LogicalOperator.NOT.value: self.child.to_dict()}


@dataclass(frozen=True)
class FieldsCondition:
    """Several keys of one predicate object; implicitly AND-ed."""

    entries: tuple[PredicateNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return _merge_dicts(e.to_dict() for e in self.entries)


PredicateNode = Union[
    FieldCondition,
    RelationCondition,
    AndCondition,
    OrCondition,
    NotCondition,
    FieldsCondition,
]

# ---------------------------------------------------------------------------
# Selection / inclusion nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnSelection:
    """A selected column, optionally renamed in the output."""

    field: str
    output_name: str | None = None

    @property
    def output_key(self) -> str:
        return self.output_name or self.field

    def to_dict(self) -> dict[str, Any]:
        if self.output_name is None:
            return {self.field: True}
        return {self.field: {"as": self.output_name}}


@dataclass(frozen=True)
class RelationSelection:
    """Columns selected on an (already included) relation."""

    relation: str
    children: tuple[SelectionNode, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        if not self.children:
            return {self.relation: True}
        return {self.relation: _merge_dicts(c.to_dict() for c in self.children)}


SelectionNode = Union[ColumnSelection, RelationSelection]


@dataclass(frozen=True)
class IncludeNode:
    """A relation to join into the result, with optional alias override."""

    relation: str
    as_: str | None = None
    children: tuple[IncludeNode, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        if self.as_ is None and not self.children:
            return {self.relation: True}
        value: dict[str, Any] = {}
        if self.as_ is not None:
            value["as"] = self.as_
        if self.children:
            value["include"] = _merge_dicts(c.to_dict() for c in self.children)
        return {self.relation: value}


def _merge_dicts(parts: Any) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for part in parts:
        merged.update(part)
    return merged


def _join_path(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_predicate(data: Mapping[str, Any], entity: EntityMetadata) -> PredicateNode:
    """
    Parse a predicate object against *entity*.

    Raises:
        UnsupportedOperatorError: Unknown operator token on a field.
        RelationNotFoundError: A key shaped like a relation reference
            names no relation of the entity.
        FieldNotFoundError: A key names neither a column nor a relation.
        ValidationError: Structurally invalid input.
    """
    return _parse_predicate_node(data, entity, "")


def _parse_predicate_node(
    data: Any, entity: EntityMetadata, path: str
) -> PredicateNode:
    if not isinstance(data, Mapping):
        raise ValidationError(
            f"Expected a predicate object, got {type(data).__name__}",
            path=path or "<root>",
        )

    entries: list[PredicateNode] = []
    for key, value in data.items():
        key_path = _join_path(path, key)
        relation = entity.relation(key)
        if relation is not None:
            if not isinstance(value, Mapping):
                raise ValidationError(
                    f"Relation '{key}' expects a nested predicate object",
                    path=key_path,
                )
            entries.append(
                RelationCondition(
                    key, _parse_predicate_node(value, relation.target, key_path)
                )
            )
        elif entity.has_column(key):
            entries.append(
                FieldCondition(
                    key,
                    entity.column_name(key),
                    _parse_field_comparison(value, key_path),
                )
            )
        elif normalize_token(key) in LOGICAL_TOKENS:
            entries.append(
                _parse_logical(normalize_token(key), value, entity, path, key_path)
            )
        elif _looks_like_relation(value):
            raise RelationNotFoundError(
                key, entity.name, entity.relation_names, full_path=key_path
            )
        else:
            raise FieldNotFoundError(
                key, entity.name, entity.field_names, full_path=key_path
            )

    if len(entries) == 1:
        return entries[0]
    return FieldsCondition(tuple(entries))


def _looks_like_relation(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and not any(is_operator_token(str(k)) for k in value)
    )


def _parse_logical(
    token: str,
    value: Any,
    entity: EntityMetadata,
    path: str,
    key_path: str,
) -> PredicateNode:
    if token == LogicalOperator.NOT:
        if isinstance(value, Sequence) and not isinstance(value, str):
            if len(value) != 1:
                raise ValidationError(
                    "'not' expects a single predicate object", path=key_path
                )
            value = value[0]
        return NotCondition(_parse_predicate_node(value, entity, path))

    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ValidationError(f"'{token}' expects a list of predicates", path=key_path)
    if not value:
        raise ValidationError(
            f"'{token}' requires at least one predicate", path=key_path
        )

    children = tuple(_parse_predicate_node(child, entity, path) for child in value)
    if token == LogicalOperator.AND:
        return AndCondition(children)
    return OrCondition(children)


def _parse_field_comparison(value: Any, path: str) -> tuple[FieldComparison, ...]:
    if not isinstance(value, Mapping):
        raise ValidationError(
            "Field comparison expects an operator object such as {'eq': value}, "
            f"got {type(value).__name__}",
            path=path,
        )
    if not value:
        raise ValidationError("Field comparison has no operators", path=path)

    comparisons: list[FieldComparison] = []
    for op_key, op_value in value.items():
        token = normalize_token(str(op_key))
        if token == QueryOperator.OR:
            if isinstance(op_value, str) or not isinstance(op_value, Sequence):
                raise ValidationError(
                    "'or' expects a list of field comparisons", path=path
                )
            if not op_value:
                raise ValidationError(
                    "'or' requires at least one field comparison", path=path
                )
            comparisons.append(
                OrComparison(
                    tuple(_parse_field_comparison(alt, path) for alt in op_value)
                )
            )
        elif token in OPERATOR_TOKENS:
            comparisons.append(Comparison(QueryOperator(token), op_value))
        else:
            raise UnsupportedOperatorError(str(op_key), sorted(OPERATOR_TOKENS))
    return tuple(comparisons)


def parse_selection(
    data: Mapping[str, Any], entity: EntityMetadata
) -> tuple[SelectionNode, ...]:
    """Parse a selection object against *entity*."""
    return _parse_selection_nodes(data, entity, "")


def _parse_selection_nodes(
    data: Any, entity: EntityMetadata, path: str
) -> tuple[SelectionNode, ...]:
    if not isinstance(data, Mapping):
        raise ValidationError(
            f"Expected a selection object, got {type(data).__name__}",
            path=path or "<root>",
        )

    nodes: list[SelectionNode] = []
    for key, value in data.items():
        key_path = _join_path(path, key)
        if value is False or value is None:
            continue
        relation = entity.relation(key)
        if relation is not None:
            if value is True:
                nodes.append(RelationSelection(key))
            elif isinstance(value, Mapping):
                nodes.append(
                    RelationSelection(
                        key,
                        _parse_selection_nodes(value, relation.target, key_path),
                    )
                )
            else:
                raise ValidationError(
                    f"Relation '{key}' expects true or a nested selection",
                    path=key_path,
                )
        elif entity.has_column(key):
            nodes.append(_parse_column_selection(key, value, key_path))
        else:
            raise FieldNotFoundError(
                key, entity.name, entity.field_names, full_path=key_path
            )
    return tuple(nodes)


def _parse_column_selection(key: str, value: Any, path: str) -> ColumnSelection:
    if value is True:
        return ColumnSelection(key)
    if isinstance(value, Mapping) and set(value) == {"as"}:
        alias = value["as"]
        if not isinstance(alias, str) or not alias:
            raise ValidationError("'as' must be a non-empty string", path=path)
        return ColumnSelection(key, alias)
    raise ValidationError(
        f"Column '{key}' expects true or {{'as': name}}", path=path
    )


def parse_inclusion(
    data: Mapping[str, Any], entity: EntityMetadata
) -> tuple[IncludeNode, ...]:
    """Parse an inclusion object against *entity*."""
    return _parse_include_nodes(data, entity, "")


def _parse_include_nodes(
    data: Any, entity: EntityMetadata, path: str
) -> tuple[IncludeNode, ...]:
    if not isinstance(data, Mapping):
        raise ValidationError(
            f"Expected an inclusion object, got {type(data).__name__}",
            path=path or "<root>",
        )

    nodes: list[IncludeNode] = []
    for key, value in data.items():
        key_path = _join_path(path, key)
        if value is False or value is None:
            continue
        relation = entity.relation(key)
        if relation is None:
            raise RelationNotFoundError(
                key, entity.name, entity.relation_names, full_path=key_path
            )
        if value is True:
            nodes.append(IncludeNode(key))
            continue
        if not isinstance(value, Mapping):
            raise ValidationError(
                f"Relation '{key}' expects true or {{'as': ..., 'include': ...}}",
                path=key_path,
            )
        unknown = set(value) - {"as", "include"}
        if unknown:
            raise ValidationError(
                f"Unknown inclusion keys: {', '.join(sorted(unknown))}",
                path=key_path,
            )
        alias = value.get("as")
        if alias is not None and (not isinstance(alias, str) or not alias):
            raise ValidationError("'as' must be a non-empty string", path=key_path)
        children: tuple[IncludeNode, ...] = ()
        if value.get("include"):
            children = _parse_include_nodes(value["include"], relation.target, key_path)
        nodes.append(IncludeNode(key, alias, children))
    return tuple(nodes)
