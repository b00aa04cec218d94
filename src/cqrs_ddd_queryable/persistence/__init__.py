"""
SQLAlchemy backend.

Public API:
    - ``build_metadata_registry(Base | *models)``: entity metadata from
      mapper inspection
    - ``Queryable``: fluent query over one model, executed on an
      ``AsyncSession``
    - ``DbContext``: session + registry + named repositories
    - ``build_select`` / ``build_count`` / ``build_exists`` /
      ``build_delete``: compiled query to SQLAlchemy statements
    - ``build_update``: primary-key update statement
    - ``hydrate``: loaded ORM instance to a plain row
"""

from .context import DbContext
from .hydration import hydrate
from .metadata import build_metadata_registry, entity_metadata_from_mapper
from .queryable import Queryable, key_path_predicate
from .statement import (
    build_count,
    build_delete,
    build_exists,
    build_select,
    build_update,
)

__all__ = [
    "DbContext",
    "Queryable",
    "build_metadata_registry",
    "entity_metadata_from_mapper",
    "build_select",
    "build_count",
    "build_exists",
    "build_delete",
    "build_update",
    "hydrate",
    "key_path_predicate",
]
