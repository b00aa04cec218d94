"""Standard comparison operators."""

from __future__ import annotations

from typing import Any

from ..operators import QueryOperator
from ..strategy import FilterOperator, ParameterBinder


def _compare(
    column: str, symbol: str, key: str, value: Any, binder: ParameterBinder
) -> str:
    return f"{column} {symbol} {binder.bind(key, value)}"


class EqualOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.EQ

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return _compare(column, "=", key, value, binder)


class NotEqualOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.NE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return _compare(column, "!=", key, value, binder)


class LessThanOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.LT

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return _compare(column, "<", key, value, binder)


class LessEqualOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.LTE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return _compare(column, "<=", key, value, binder)


class GreaterThanOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.GT

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return _compare(column, ">", key, value, binder)


class GreaterEqualOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.GTE

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        return _compare(column, ">=", key, value, binder)
