"""
Build :class:`MetadataRegistry` instances from SQLAlchemy mappers.

Usage::

    registry = build_metadata_registry(Base)          # every mapped class
    registry = build_metadata_registry(User, Post)    # explicit models
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

from ..metadata import EntityMetadata, MetadataRegistry, RelationMetadata

logger = logging.getLogger(__name__)


def _collect_mappers(targets: tuple[Any, ...]) -> list[Mapper[Any]]:
    mappers: list[Mapper[Any]] = []
    for target in targets:
        registry = getattr(target, "registry", None)
        if registry is not None and getattr(target, "__table__", None) is None:
            # a declarative base: take every class mapped through it
            mappers.extend(
                sorted(registry.mappers, key=lambda m: m.class_.__name__)
            )
        else:
            mappers.append(sa_inspect(target))
    return mappers


def entity_metadata_from_mapper(mapper: Mapper[Any]) -> EntityMetadata:
    """Columns and primary key of one mapper; relations are linked later."""
    columns = {prop.key: prop.columns[0].name for prop in mapper.column_attrs}
    primary_key = tuple(
        mapper.get_property_by_column(column).key for column in mapper.primary_key
    )
    return EntityMetadata(
        name=mapper.class_.__name__,
        class_=mapper.class_,
        columns=columns,
        primary_key=primary_key,
    )


def build_metadata_registry(*targets: Any) -> MetadataRegistry:
    """
    Inspect declarative bases or mapped classes into a registry.

    Entities are created first and relations linked in a second pass, so
    bidirectional relations resolve to the same metadata objects.
    Relations whose target is not part of *targets* are skipped.
    """
    mappers = _collect_mappers(targets)
    registry = MetadataRegistry()
    for mapper in mappers:
        registry.register(entity_metadata_from_mapper(mapper))

    for mapper in mappers:
        entity = registry.get(mapper.class_)
        for rel in mapper.relationships:
            target_cls = rel.mapper.class_
            if target_cls not in registry:
                logger.debug(
                    "Skipping relation %s.%s: %s is not registered",
                    entity.name,
                    rel.key,
                    target_cls.__name__,
                )
                continue
            entity.relations[rel.key] = RelationMetadata(
                name=rel.key,
                target=registry.get(target_cls),
                uselist=bool(rel.uselist),
            )

    logger.debug("Built metadata for %d entities", len(registry))
    return registry
