"""Null check operators. Neither binds a parameter."""

from __future__ import annotations

from typing import Any

from ..operators import QueryOperator
from ..strategy import FilterOperator, ParameterBinder


class IsNullOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.IS_NULL

    def render(
        self, column: str, _key: str, _value: Any, _binder: ParameterBinder
    ) -> str:
        return f"{column} IS NULL"


class IsNotNullOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.IS_NOT_NULL

    def render(
        self, column: str, _key: str, _value: Any, _binder: ParameterBinder
    ) -> str:
        return f"{column} IS NOT NULL"
