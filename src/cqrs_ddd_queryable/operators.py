from __future__ import annotations

from enum import Enum


class QueryOperator(str, Enum):
    """Operator tokens accepted in field comparisons."""

    # Standard comparison
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"

    # Set
    IN = "in"
    NOT_IN = "notIn"
    BETWEEN = "between"

    # String
    LIKE = "like"
    ILIKE = "iLike"
    NOT_LIKE = "notLike"
    NOT_ILIKE = "notILike"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    MATCHES = "matches"

    # Null checks
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"

    # Intra-field disjunction
    OR = "or"


class LogicalOperator(str, Enum):
    """Combinator keys of a predicate node."""

    AND = "and"
    OR = "or"
    NOT = "not"


OPERATOR_TOKENS: frozenset[str] = frozenset(m.value for m in QueryOperator)
LOGICAL_TOKENS: frozenset[str] = frozenset(m.value for m in LogicalOperator)


def normalize_token(key: str) -> str:
    """Strip the ``$`` prefix of the ``{"$eq": ...}`` spelling."""
    return key[1:] if key.startswith("$") else key


def is_operator_token(key: str) -> bool:
    return normalize_token(key) in OPERATOR_TOKENS
