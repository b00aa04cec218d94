"""
Queryable exception hierarchy with fuzzy-match suggestions.

All exceptions inherit from ``QueryableError`` and provide ``to_dict()``
for API-friendly error responses.  Every error raised while compiling a
query is raised before any statement reaches the database.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class QueryableError(Exception):
    """Base exception for all queryable errors."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class ValidationError(QueryableError):
    """A predicate, selection or inclusion tree is malformed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "VALIDATION_ERROR",
            "message": self.message,
            "path": self.path,
        }


class UnsupportedOperatorError(QueryableError):
    """
    Unknown operator token in a field comparison.

    Provides fuzzy-matched suggestions for likely intended operators.
    """

    def __init__(self, operator: str, valid_operators: list[str] | None = None) -> None:
        self.operator = operator
        self.valid_operators = valid_operators or []
        self.suggestions = get_close_matches(
            operator, self.valid_operators, n=3, cutoff=0.6
        )

        message = f"Unsupported operator: '{operator}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNSUPPORTED_OPERATOR",
            "operator": self.operator,
            "suggestions": self.suggestions,
            "valid_operators": sorted(self.valid_operators),
        }


class RelationNotFoundError(QueryableError):
    """
    A relation path segment has no matching relation on the current entity.

    Example error message::

        Relation 'post' not found in entity 'User' (path 'post.comments').
        Did you mean: posts?
        Available relations: posts, profile
    """

    def __init__(
        self,
        relation: str,
        entity_name: str,
        available_relations: list[str],
        full_path: str | None = None,
    ) -> None:
        self.relation = relation
        self.entity_name = entity_name
        self.available_relations = available_relations
        self.full_path = full_path or relation
        self.suggestions = get_close_matches(
            relation, available_relations, n=3, cutoff=0.6
        )

        lines = [
            f"Relation '{relation}' not found in entity '{entity_name}'"
            f" (path '{self.full_path}')."
        ]
        if self.suggestions:
            lines.append(f"Did you mean: {', '.join(self.suggestions)}?")
        lines.append(
            "Available relations: "
            + (", ".join(sorted(available_relations)) or "<none>")
        )
        super().__init__("\n".join(lines))

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "RELATION_NOT_FOUND",
            "relation": self.relation,
            "entity": self.entity_name,
            "full_path": self.full_path,
            "suggestions": self.suggestions,
            "available_relations": sorted(self.available_relations),
        }


class FieldNotFoundError(QueryableError):
    """
    A key names neither a column nor a relation of the current entity.

    Uses fuzzy matching to suggest similar valid field names.
    """

    def __init__(
        self,
        invalid_field: str,
        entity_name: str,
        available_fields: list[str],
        full_path: str | None = None,
        cutoff: float = 0.6,
    ) -> None:
        self.invalid_field = invalid_field
        self.entity_name = entity_name
        self.available_fields = available_fields
        self.full_path = full_path or invalid_field

        self.suggestions = get_close_matches(
            invalid_field, available_fields, n=5, cutoff=cutoff
        )

        message = self._build_message()
        super().__init__(message)

    def _build_message(self) -> str:
        lines = [f"Invalid field '{self.invalid_field}' on '{self.entity_name}'."]
        if self.suggestions:
            lines.append("Did you mean one of these?")
            for s in self.suggestions:
                lines.append(f"  • {s}")

        sorted_fields = sorted(self.available_fields)
        preview = ", ".join(sorted_fields[:15])
        if len(sorted_fields) > 15:
            preview += ", ..."
        lines.append(f"Available fields: {preview}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "FIELD_NOT_FOUND",
            "field": self.invalid_field,
            "entity": self.entity_name,
            "full_path": self.full_path,
            "suggestions": self.suggestions,
            "available_fields": sorted(self.available_fields),
        }


class ProjectionRelationNotIncludedError(QueryableError):
    """A selection references a relation path that was never included."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Relation '{path}' is selected but not included. "
            f"Call include() for '{path}' before selecting its columns."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "PROJECTION_RELATION_NOT_INCLUDED",
            "path": self.path,
        }


class AliasConflictError(QueryableError):
    """
    Two different relation paths were mapped to the same alias.

    Synthesised aliases never collide; this is raised when an explicit
    ``as`` override reuses an alias already bound to another path.
    """

    def __init__(self, alias: str, existing_path: str, new_path: str) -> None:
        self.alias = alias
        self.existing_path = existing_path
        self.new_path = new_path
        super().__init__(
            f"Alias '{alias}' is already bound to '{existing_path}'; "
            f"cannot bind it to '{new_path}'"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "ALIAS_CONFLICT",
            "alias": self.alias,
            "existing_path": self.existing_path,
            "new_path": self.new_path,
        }


class NoEntityFoundError(QueryableError):
    """A single-result terminal operation matched no rows."""

    def __init__(self, entity_name: str) -> None:
        self.entity_name = entity_name
        super().__init__(f"No entity found for '{entity_name}'")


class MultipleEntitiesFoundError(QueryableError):
    """``single()`` matched more than one root entity."""

    def __init__(self, entity_name: str) -> None:
        self.entity_name = entity_name
        super().__init__(f"Multiple entities found for '{entity_name}'")


class EntityNotRegisteredError(QueryableError):
    """The model has no metadata in the :class:`MetadataRegistry`."""

    def __init__(self, name: str, registered: list[str]) -> None:
        self.name = name
        self.registered = registered
        super().__init__(
            f"Entity '{name}' is not registered. "
            f"Registered entities: {', '.join(sorted(registered)) or '<none>'}"
        )


class RepositoryNotRegisteredError(QueryableError):
    """``DbContext.get_repository`` was called with an unknown name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Repository '{name}' not found. "
            f"Make sure it is registered in the DbContext repositories."
        )


__all__: list[str] = [
    "AliasConflictError",
    "EntityNotRegisteredError",
    "FieldNotFoundError",
    "MultipleEntitiesFoundError",
    "NoEntityFoundError",
    "ProjectionRelationNotIncludedError",
    "QueryableError",
    "RelationNotFoundError",
    "RepositoryNotRegisteredError",
    "UnsupportedOperatorError",
    "ValidationError",
]
