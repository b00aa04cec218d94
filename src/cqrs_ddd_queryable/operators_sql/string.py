"""String matching operators."""

from __future__ import annotations

from typing import Any

from ..operators import QueryOperator
from ..strategy import FilterOperator, ParameterBinder


class LikeOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.LIKE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"{column} LIKE {binder.bind(key, f'%{value}%')}"


class NotLikeOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.NOT_LIKE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"{column} NOT LIKE {binder.bind(key, f'%{value}%')}"


class ILikeOperator(FilterOperator):
    """Case-insensitive LIKE, rendered with ``LOWER()`` on both sides."""

    @property
    def name(self) -> QueryOperator:
        return QueryOperator.ILIKE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"LOWER({column}) LIKE LOWER({binder.bind(key, f'%{value}%')})"


class NotILikeOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.NOT_ILIKE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"LOWER({column}) NOT LIKE LOWER({binder.bind(key, f'%{value}%')})"


class ContainsOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.CONTAINS

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"{column} LIKE {binder.bind(key, f'%{value}%')}"


class StartsWithOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.STARTS_WITH

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"{column} LIKE {binder.bind(key, f'{value}%')}"


class EndsWithOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.ENDS_WITH

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"{column} LIKE {binder.bind(key, f'%{value}')}"


class MatchesOperator(FilterOperator):
    """
    Regular-expression match.

    PostgreSQL spells it ``~``; SQLite (with the function SQLAlchemy
    registers on connect) and MySQL spell it ``REGEXP``.
    """

    def __init__(self, symbol: str = "~") -> None:
        self.symbol = symbol

    @property
    def name(self) -> QueryOperator:
        return QueryOperator.MATCHES

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return f"{column} {self.symbol} {binder.bind(key, value)}"
