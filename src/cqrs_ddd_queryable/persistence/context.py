"""
DbContext: entry point wiring a session, metadata and named repositories.

Usage::

    registry = build_metadata_registry(Base)
    ctx = DbContext(session, registry, repositories={"users": User})

    await ctx.set(User).where({"name": {"eq": "John"}}).first()
    await ctx.users.find(1)                      # named repository
    await ctx.get_repository("users").count()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from ..exceptions import RepositoryNotRegisteredError
from ..options import QueryableOptions
from .queryable import Queryable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from ..metadata import MetadataRegistry
    from ..strategy import FilterOperatorRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DbContext:
    """
    Hands out :class:`Queryable` instances bound to one session.

    The context holds no query state: each ``set()`` / repository access
    returns a fresh ``Queryable``, so one context may serve concurrent
    callers as long as the session itself allows it.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: MetadataRegistry,
        *,
        options: QueryableOptions | None = None,
        repositories: Mapping[str, type[Any]] | None = None,
        operator_registry: FilterOperatorRegistry | None = None,
    ) -> None:
        self._session = session
        self._registry = registry
        self._options = options or QueryableOptions()
        self._operator_registry = operator_registry
        self._repositories: dict[str, type[Any]] = {}
        for name, model in (repositories or {}).items():
            self.register_repository(name, model)

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def registry(self) -> MetadataRegistry:
        return self._registry

    @property
    def options(self) -> QueryableOptions:
        return self._options

    def set(self, model: type[T]) -> Queryable[T]:
        """
        Start a query over *model*.

        Raises:
            EntityNotRegisteredError: *model* has no metadata.
        """
        return Queryable(
            self._session,
            model,
            self._registry,
            options=self._options,
            operator_registry=self._operator_registry,
        )

    def register_repository(self, name: str, model: type[Any]) -> None:
        # validates the model up front
        self._registry.get(model)
        self._repositories[name] = model
        logger.debug("Registered repository '%s' -> %s", name, model.__name__)

    @property
    def repository_names(self) -> list[str]:
        return list(self._repositories)

    def get_repository(self, name: str) -> Queryable[Any]:
        """
        Raises:
            RepositoryNotRegisteredError: No repository is registered as *name*.
        """
        model = self._repositories.get(name)
        if model is None:
            raise RepositoryNotRegisteredError(name)
        return self.set(model)

    def __getattr__(self, name: str) -> Queryable[Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.get_repository(name)
        except RepositoryNotRegisteredError as exc:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            ) from exc
