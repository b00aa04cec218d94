"""Queryable configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class QueryableOptions(BaseModel):
    """
    Execution options shared by every ``Queryable`` of a ``DbContext``.

    Attributes:
        max_results: Upper bound on rows a list query returns; also caps
            explicit ``take()`` values.  ``None`` disables the cap.
        stable_ordering: Append the root primary key to every ordering so
            paging is deterministic.
        log_statements: DEBUG-log each executed statement.
        dialect: Dialect name used to pick the operator table and identifier
            quoting (e.g. ``"postgresql"``).  Defaults to the session
            bind's dialect.
    """

    model_config = ConfigDict(frozen=True)

    max_results: int | None = Field(default=None, ge=1)
    stable_ordering: bool = True
    log_statements: bool = False
    dialect: str | None = None

    def cap(self, limit: int | None) -> int | None:
        """Apply ``max_results`` to *limit*."""
        if self.max_results is None:
            return limit
        if limit is None:
            return self.max_results
        return min(limit, self.max_results)
