"""Set operators: in, notIn, between."""

from __future__ import annotations

from typing import Any

from ..exceptions import ValidationError
from ..operators import QueryOperator
from ..strategy import FilterOperator, ParameterBinder


def _as_list(op: QueryOperator, value: Any) -> list[Any]:
    if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
        raise ValidationError(
            f"Operator '{op.value}' expects an array value, "
            f"got {type(value).__name__}"
        )
    return list(value)


class InOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.IN

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        values = _as_list(self.name, value)
        return f"{column} IN {binder.bind(key, values, expanding=True)}"


class NotInOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.NOT_IN

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        values = _as_list(self.name, value)
        return f"{column} NOT IN {binder.bind(key, values, expanding=True)}"


class BetweenOperator(FilterOperator):
    @property
    def name(self) -> QueryOperator:
        return QueryOperator.BETWEEN

    def render(
        self, column: str, key: str, value: Any, binder: ParameterBinder
    ) -> str:
        bounds = _as_list(self.name, value)
        if len(bounds) != 2:
            raise ValidationError(
                f"Operator 'between' expects [start, end], got {len(bounds)} values"
            )
        start = binder.bind(f"{key}_start", bounds[0])
        end = binder.bind(f"{key}_end", bounds[1])
        return f"{column} BETWEEN {start} AND {end}"
