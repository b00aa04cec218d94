"""
Static entity/relation metadata.

Built once from schema declarations (see
:func:`cqrs_ddd_queryable.persistence.metadata.build_metadata_registry`)
and passed explicitly to every query; nothing here is looked up from
ambient global state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import EntityNotRegisteredError


@dataclass(frozen=True)
class RelationMetadata:
    """
    One navigable relation of an entity.

    Attributes:
        name: Property name on the owning entity (``posts``).
        target: Metadata of the related entity.
        uselist: ``True`` for to-many relations (hydrated as lists).
    """

    name: str
    target: EntityMetadata = field(repr=False, compare=False)
    uselist: bool = False


@dataclass(eq=False)
class EntityMetadata:
    """
    Columns and relations of one mapped entity.

    Attributes:
        name: Entity name (the mapped class name).
        class_: The mapped class.
        columns: ``{attribute_name: column_name}`` in declaration order.
        primary_key: Attribute names of the primary key.
        relations: ``{relation_name: RelationMetadata}``.  Filled after
            every entity of a registry exists so cyclic relations link.
    """

    name: str
    class_: Any = None
    columns: dict[str, str] = field(default_factory=dict)
    primary_key: tuple[str, ...] = ()
    relations: dict[str, RelationMetadata] = field(default_factory=dict)

    def has_column(self, attr: str) -> bool:
        return attr in self.columns

    def has_relation(self, name: str) -> bool:
        return name in self.relations

    def column_name(self, attr: str) -> str:
        return self.columns.get(attr, attr)

    def relation(self, name: str) -> RelationMetadata | None:
        return self.relations.get(name)

    @property
    def relation_names(self) -> list[str]:
        return list(self.relations)

    @property
    def field_names(self) -> list[str]:
        return [*self.columns, *self.relations]

    def __repr__(self) -> str:
        return f"EntityMetadata({self.name!r})"


class MetadataRegistry:
    """Entity metadata keyed by mapped class and by entity name."""

    def __init__(self, entities: list[EntityMetadata] | None = None) -> None:
        self._by_name: dict[str, EntityMetadata] = {}
        self._by_class: dict[Any, EntityMetadata] = {}
        for entity in entities or []:
            self.register(entity)

    def register(self, entity: EntityMetadata) -> None:
        self._by_name[entity.name] = entity
        if entity.class_ is not None:
            self._by_class[entity.class_] = entity

    def get(self, key: Any) -> EntityMetadata:
        """
        Return metadata for a mapped class or an entity name.

        Raises:
            EntityNotRegisteredError: If nothing is registered under *key*.
        """
        found = (
            self._by_name.get(key)
            if isinstance(key, str)
            else self._by_class.get(key)
        )
        if found is None:
            name = key if isinstance(key, str) else getattr(key, "__name__", repr(key))
            raise EntityNotRegisteredError(name, list(self._by_name))
        return found

    def __contains__(self, key: Any) -> bool:
        return key in self._by_name or key in self._by_class

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
