"""
Filter operator rendering strategy.

Provides the ``FilterOperator`` interface, the ``ParameterBinder`` that
collects named parameters while fragments are rendered, and the registry
that maps operator tokens to strategies (the operator table).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .exceptions import UnsupportedOperatorError
from .operators import QueryOperator, normalize_token


@dataclass
class ParameterBinder:
    """
    Accumulates bound parameters for one compilation pass.

    Attributes:
        params: ``{name: value}`` in binding order.
        expanding: Names whose value is a list rendered by the engine
            as a parenthesised list (``IN :name``).
    """

    params: dict[str, Any] = field(default_factory=dict)
    expanding: set[str] = field(default_factory=set)

    def bind(self, name: str, value: Any, *, expanding: bool = False) -> str:
        """Bind *value* under *name* and return the ``:name`` placeholder."""
        self.params[name] = value
        if expanding:
            self.expanding.add(name)
        return f":{name}"


class FilterOperator(ABC):
    """
    Strategy interface for rendering one comparison operator into a
    parameterised filter fragment.
    """

    @property
    @abstractmethod
    def name(self) -> QueryOperator:
        """The operator token this strategy handles."""
        ...

    @abstractmethod
    def render(
        self,
        column: str,
        key: str,
        value: Any,
        binder: ParameterBinder,
    ) -> str:
        """
        Build a filter fragment.

        Args:
            column: Qualified column reference, e.g. ``u.name``.
            key: Unique parameter name reserved for this comparison.
            value: The comparison value from the predicate.
            binder: Collects the parameters the fragment references.

        Returns:
            The fragment text, e.g. ``u.name = :name_0``.
        """
        ...


class FilterOperatorRegistry:
    """Registry of ``FilterOperator`` instances keyed by :class:`QueryOperator`."""

    def __init__(self) -> None:
        self._operators: dict[QueryOperator, FilterOperator] = {}

    def register(self, operator: FilterOperator) -> None:
        self._operators[operator.name] = operator

    def register_all(self, *operators: FilterOperator) -> None:
        for op in operators:
            self.register(op)

    def unregister(self, name: QueryOperator) -> None:
        self._operators.pop(name, None)

    def get(self, name: QueryOperator | str) -> FilterOperator | None:
        try:
            token = QueryOperator(normalize_token(name))
        except ValueError:
            return None
        return self._operators.get(token)

    def has(self, name: QueryOperator | str) -> bool:
        return self.get(name) is not None

    @property
    def supported_operators(self) -> set[QueryOperator]:
        return set(self._operators.keys())

    def render(
        self,
        name: QueryOperator | str,
        column: str,
        key: str,
        value: Any,
        binder: ParameterBinder,
    ) -> str:
        """
        Look up the operator and render it.

        Raises:
            UnsupportedOperatorError: If the operator is not registered.
        """
        op = self.get(name)
        if op is None:
            raise UnsupportedOperatorError(
                str(name.value if isinstance(name, QueryOperator) else name),
                [o.value for o in self._operators],
            )
        return op.render(column, key, value, binder)
