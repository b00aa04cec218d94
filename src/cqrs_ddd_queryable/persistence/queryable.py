"""
Fluent, immutable query builder over one mapped model.

Every builder method parses its input against the entity's metadata and
returns a new ``Queryable`` wrapping an extended :class:`QuerySpec`.  The
terminal (async) methods compile the query in a fresh context, execute one
statement on the session and materialize each root entity::

    users = (
        ctx.set(User)
        .include({"posts": True})
        .select({"name": True, "posts": {"title": {"as": "postTitle"}}})
        .where({"posts": {"published": {"eq": True}}})
        .order_by_descending("name")
        .take(5)
    )
    rows = await users.to_list()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy.engine import URL

from ..ast import parse_inclusion, parse_predicate, parse_selection
from ..exceptions import (
    FieldNotFoundError,
    MultipleEntitiesFoundError,
    NoEntityFoundError,
    ValidationError,
)
from ..materializer import materialize
from ..operators_sql import build_default_registry
from ..options import QueryableOptions
from ..query_spec import ASC, DESC, QuerySpec, compile_query_spec
from ..results import PagedResult
from .hydration import hydrate
from .statement import (
    build_count,
    build_delete,
    build_exists,
    build_select,
    build_update,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncSession

    from ..metadata import EntityMetadata, MetadataRegistry
    from ..query_spec import CompiledQuery
    from ..strategy import FilterOperatorRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _non_negative(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{name}() expects a non-negative integer, got {value!r}")
    return value


def key_path_predicate(key_path: str, value: Any) -> dict[str, Any]:
    """``("author.email", v)`` -> ``{"author": {"email": {"eq": v}}}``."""
    *relations, field_name = key_path.split(".")
    predicate: dict[str, Any] = {field_name: {"eq": value}}
    for relation in reversed(relations):
        predicate = {relation: predicate}
    return predicate


class Queryable(Generic[T]):
    """
    Query over the entities of *model*.

    Args:
        session: The caller's ``AsyncSession``; its lifecycle and
            transactions stay with the caller.
        model: Mapped class of the root entity.
        registry: Entity metadata.
        options: Execution options.
        operator_registry: Operator table; by default built for the
            session's dialect.
        spec: Accumulated query; builder methods pass it along.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type[T],
        registry: MetadataRegistry,
        *,
        options: QueryableOptions | None = None,
        operator_registry: FilterOperatorRegistry | None = None,
        spec: QuerySpec | None = None,
    ) -> None:
        self._session = session
        self._model = model
        self._registry = registry
        self._options = options or QueryableOptions()
        self._operator_registry = operator_registry
        self._entity = registry.get(model)
        self.spec = spec or QuerySpec()

    @property
    def model(self) -> type[T]:
        return self._model

    @property
    def entity(self) -> EntityMetadata:
        return self._entity

    @property
    def root_alias(self) -> str:
        return self._entity.name.lower()

    def _with(self, spec: QuerySpec) -> Queryable[T]:
        return Queryable(
            self._session,
            self._model,
            self._registry,
            options=self._options,
            operator_registry=self._operator_registry,
            spec=spec,
        )

    # -- builder ------------------------------------------------------------

    def where(self, predicate: Mapping[str, Any]) -> Queryable[T]:
        """AND *predicate* onto the query."""
        node = parse_predicate(predicate, self._entity)
        return self._with(self.spec.with_predicate(node))

    def include(self, inclusion: Mapping[str, Any]) -> Queryable[T]:
        """Join and load the relations named in *inclusion*."""
        return self._with(
            self.spec.with_inclusions(parse_inclusion(inclusion, self._entity))
        )

    def select(self, selection: Mapping[str, Any]) -> Queryable[T]:
        """Restrict and rename output columns; relations must be included."""
        return self._with(
            self.spec.with_selections(parse_selection(selection, self._entity))
        )

    def order_by(self, field_name: str) -> Queryable[T]:
        return self._with(self.spec.with_ordering(field_name, ASC))

    def order_by_descending(self, field_name: str) -> Queryable[T]:
        return self._with(self.spec.with_ordering(field_name, DESC))

    def then_by(self, field_name: str) -> Queryable[T]:
        return self._with(self.spec.then_ordering(field_name, ASC))

    def then_by_descending(self, field_name: str) -> Queryable[T]:
        return self._with(self.spec.then_ordering(field_name, DESC))

    def skip(self, count: int) -> Queryable[T]:
        offset = _non_negative("skip", count)
        return self._with(self.spec.with_pagination(offset=offset))

    def take(self, count: int) -> Queryable[T]:
        limit = _non_negative("take", count)
        return self._with(self.spec.with_pagination(limit=limit))

    def distinct(self) -> Queryable[T]:
        return self._with(self.spec.with_distinct())

    # -- compilation --------------------------------------------------------

    def _dialect(self) -> Dialect | None:
        """``options.dialect`` if set, else the dialect the session is bound to."""
        if self._options.dialect is not None:
            return URL.create(self._options.dialect).get_dialect()()
        bind = getattr(self._session, "bind", None)
        return bind.dialect if bind is not None else None

    def _operators(self, dialect: Dialect | None) -> FilterOperatorRegistry:
        if self._operator_registry is not None:
            return self._operator_registry
        name = self._options.dialect or (dialect.name if dialect else None)
        return build_default_registry(name)

    def compile(self) -> CompiledQuery:
        """Compile the accumulated spec; raises before any I/O on bad input."""
        spec = self.spec
        capped = self._options.cap(spec.limit)
        if capped != spec.limit:
            spec = spec.with_pagination(limit=capped)
        dialect = self._dialect()
        return compile_query_spec(
            spec,
            self._entity,
            self.root_alias,
            self._operators(dialect),
            stable_ordering=self._options.stable_ordering,
            quote=dialect.identifier_preparer.quote if dialect else None,
        )

    async def _execute(self, stmt: Any) -> Any:
        if self._options.log_statements:
            logger.debug("Executing %s", stmt)
        return await self._session.execute(stmt)

    # -- terminal operations ------------------------------------------------

    async def to_list(self) -> list[dict[str, Any]]:
        """Execute and materialize every matching root entity."""
        compiled = self.compile()
        result = await self._execute(build_select(compiled, self._model))
        instances = result.unique().scalars().all()
        plan = compiled.projection
        return [materialize(hydrate(i, self._entity, plan), plan) for i in instances]

    to_array = to_list

    def _limited(self, count: int) -> Queryable[T]:
        limit = self.spec.limit
        return self.take(count if limit is None else min(count, limit))

    async def first(self) -> dict[str, Any]:
        """
        Raises:
            NoEntityFoundError: Nothing matched.
        """
        items = await self._limited(1).to_list()
        if not items:
            raise NoEntityFoundError(self._entity.name)
        return items[0]

    async def first_or_default(self, default: Any = None) -> Any:
        items = await self._limited(1).to_list()
        return items[0] if items else default

    async def single(self) -> dict[str, Any]:
        """
        Raises:
            NoEntityFoundError: Nothing matched.
            MultipleEntitiesFoundError: More than one root entity matched.
        """
        items = await self._limited(2).to_list()
        if not items:
            raise NoEntityFoundError(self._entity.name)
        if len(items) > 1:
            raise MultipleEntitiesFoundError(self._entity.name)
        return items[0]

    async def single_or_default(self, default: Any = None) -> Any:
        """
        Raises:
            MultipleEntitiesFoundError: More than one root entity matched.
        """
        items = await self._limited(2).to_list()
        if len(items) > 1:
            raise MultipleEntitiesFoundError(self._entity.name)
        return items[0] if items else default

    async def any(self) -> bool:
        compiled = self.compile()
        result = await self._execute(build_exists(compiled, self._model))
        return bool(result.scalar())

    async def count(self) -> int:
        """Number of matching root entities; ``skip``/``take`` are ignored."""
        compiled = self.compile()
        result = await self._execute(build_count(compiled, self._model))
        return int(result.scalar_one())

    async def with_count(self) -> tuple[int, list[dict[str, Any]]]:
        """``(total matching, current page)``."""
        total = await self.count()
        return total, await self.to_list()

    async def to_paged(
        self, page_number: int, page_size: int
    ) -> PagedResult[dict[str, Any]]:
        """
        Fetch page *page_number* (1-based) of *page_size* root entities.
        """
        if page_number < 1 or page_size < 1:
            raise ValidationError(
                "page_number and page_size must be positive, "
                f"got {page_number} and {page_size}"
            )
        total = await self.count()
        page = self.skip((page_number - 1) * page_size).take(page_size)
        items = await page.to_list()
        return PagedResult(
            items=items,
            total_count=total,
            page_number=page_number,
            page_size=page_size,
        )

    # -- key lookups --------------------------------------------------------

    def _key_values(self, entity_id: Any) -> dict[str, Any]:
        primary_key = self._entity.primary_key
        values = (
            tuple(entity_id)
            if len(primary_key) > 1 and isinstance(entity_id, (tuple, list))
            else (entity_id,)
        )
        if len(values) != len(primary_key):
            raise ValidationError(
                f"{self._entity.name} has a {len(primary_key)}-column primary key, "
                f"got {len(values)} value(s)"
            )
        return dict(zip(primary_key, values))

    def _by_id(self, entity_id: Any) -> Queryable[T]:
        return self.where(
            {pk: {"eq": value} for pk, value in self._key_values(entity_id).items()}
        )

    async def find(self, entity_id: Any) -> dict[str, Any]:
        """Entity with primary key *entity_id* (a tuple for composite keys)."""
        return await self._by_id(entity_id).first()

    async def find_or_default(self, entity_id: Any, default: Any = None) -> Any:
        return await self._by_id(entity_id).first_or_default(default)

    async def find_by(self, key_path: str, value: Any) -> dict[str, Any]:
        """First entity whose dotted *key_path* (``"author.email"``) equals *value*."""
        return await self.where(key_path_predicate(key_path, value)).first()

    async def find_by_or_default(
        self, key_path: str, value: Any, default: Any = None
    ) -> Any:
        return await self.where(key_path_predicate(key_path, value)).first_or_default(
            default
        )

    # -- writes -------------------------------------------------------------

    def _instance(self, values: Any) -> T:
        if isinstance(values, self._model):
            return values
        return self._model(**dict(values))

    async def create(self, values: Mapping[str, Any] | T) -> T:
        """Add one entity (a model instance or column values) and flush."""
        instance = self._instance(values)
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def create_many(self, items: Sequence[Mapping[str, Any] | T]) -> list[T]:
        instances = [self._instance(item) for item in items]
        self._session.add_all(instances)
        await self._session.flush()
        return instances

    async def update(self, entity_id: Any, values: Mapping[str, Any]) -> int:
        """
        Set *values* (``{field: value}``) on the entity with primary key
        *entity_id*; returns the number of updated rows.

        Raises:
            FieldNotFoundError: A key of *values* is not a column.
            ValidationError: *values* is empty.
        """
        if not values:
            raise ValidationError("update() expects at least one field")
        for name in values:
            if name not in self._entity.columns:
                raise FieldNotFoundError(
                    name, self._entity.name, list(self._entity.columns)
                )
        stmt = build_update(self._model, self._key_values(entity_id), values)
        result = await self._execute(stmt)
        logger.debug(
            "Updated %s %s row(s) %s", result.rowcount, self._entity.name, entity_id
        )
        return result.rowcount

    async def _delete(self, query: Queryable[T], description: str) -> int:
        result = await self._execute(build_delete(query.compile(), self._model))
        deleted = result.rowcount
        logger.debug(
            "Deleted %s %s row(s) by %s", deleted, self._entity.name, description
        )
        return deleted

    async def delete(self, entity_id: Any) -> int:
        """Delete the entity with primary key *entity_id*; returns 0 or 1."""
        return await self._delete(self._by_id(entity_id), "primary key")

    async def delete_by(self, key_path: str, value: Any) -> int:
        """Delete entities whose dotted *key_path* equals *value*.

        Returns the number of deleted rows.  Instances already in the session
        are not synchronized; re-query after deleting.
        """
        return await self._delete(
            self.where(key_path_predicate(key_path, value)), key_path
        )

    async def delete_by_or_default(
        self, key_path: str, value: Any, default: Any = None
    ) -> Any:
        """Like :meth:`delete_by`, but *default* when nothing was deleted."""
        deleted = await self.delete_by(key_path, value)
        return deleted if deleted else default

    def __repr__(self) -> str:
        return f"Queryable({self._entity.name}, {self.spec.to_dict()!r})"
