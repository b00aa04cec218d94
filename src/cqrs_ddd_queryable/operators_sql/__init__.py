"""
Operator table: rendering strategies and default registries.

Usage::

    from cqrs_ddd_queryable.operators_sql import DEFAULT_REGISTRY

    binder = ParameterBinder()
    DEFAULT_REGISTRY.render("eq", "u.name", "name_0", "John", binder)
    # → "u.name = :name_0", binder.params == {"name_0": "John"}
"""

from __future__ import annotations

from ..strategy import FilterOperatorRegistry
from .null import IsNotNullOperator, IsNullOperator
from .set import BetweenOperator, InOperator, NotInOperator
from .standard import (
    EqualOperator,
    GreaterEqualOperator,
    GreaterThanOperator,
    LessEqualOperator,
    LessThanOperator,
    NotEqualOperator,
)
from .string import (
    ContainsOperator,
    EndsWithOperator,
    ILikeOperator,
    LikeOperator,
    MatchesOperator,
    NotILikeOperator,
    NotLikeOperator,
    StartsWithOperator,
)

_REGEXP_DIALECTS = frozenset({"sqlite", "mysql", "mariadb"})


def build_default_registry(dialect: str | None = None) -> FilterOperatorRegistry:
    """
    Create a registry with all built-in operators.

    Args:
        dialect: Optional engine dialect name; only changes how
            ``matches`` is spelled.
    """
    registry = FilterOperatorRegistry()
    registry.register_all(
        # Standard comparison
        EqualOperator(),
        NotEqualOperator(),
        LessThanOperator(),
        LessEqualOperator(),
        GreaterThanOperator(),
        GreaterEqualOperator(),
        # Set
        InOperator(),
        NotInOperator(),
        BetweenOperator(),
        # String
        LikeOperator(),
        ILikeOperator(),
        NotLikeOperator(),
        NotILikeOperator(),
        ContainsOperator(),
        StartsWithOperator(),
        EndsWithOperator(),
        MatchesOperator("REGEXP" if dialect in _REGEXP_DIALECTS else "~"),
        # Null
        IsNullOperator(),
        IsNotNullOperator(),
    )
    return registry


DEFAULT_REGISTRY: FilterOperatorRegistry = build_default_registry()

__all__ = [
    "DEFAULT_REGISTRY",
    "build_default_registry",
    "FilterOperatorRegistry",
]
