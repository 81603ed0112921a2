"""
interfaces.py — The two collaborators every view is built on.

TableService   — snapshot reads and direct writes against one table
ChangeService  — push feed of row-level change notifications

Views receive both at construction time (never a module-level client),
so tests can hand them in-memory fakes and production code hands them
HttpTableService / WebSocketChangeService.

Records cross this boundary as plain dicts; views validate them into
the pydantic models they work with.
"""

from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, Union

from zonemap.models.changes import ChangeNotification

Record = dict[str, Any]
ChangeCallback = Callable[[ChangeNotification], Union[Awaitable[None], None]]


class TableServiceError(Exception):
    """A snapshot read or a write did not complete."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ChangeServiceError(Exception):
    """The change feed could not be opened."""


class TableService(Protocol):
    async def select(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        expand: Optional[str] = None,
    ) -> list[Record]:
        """Full table contents. Raises TableServiceError on failure."""
        ...

    async def insert(self, table: str, record: Record) -> Record:
        ...

    async def update(self, table: str, patch: Record, match: Record) -> Record:
        """Apply *patch* to the row identified by *match* (e.g. {"id": 3} or {"slug": "duga"})."""
        ...

    async def delete(self, table: str, match: Record) -> None:
        ...


class ChangeService(Protocol):
    async def subscribe(
        self,
        callback: ChangeCallback,
        tables: Optional[Iterable[str]] = None,
    ) -> Any:
        """Start delivering notifications to *callback*; returns a handle for unsubscribe()."""
        ...

    async def unsubscribe(self, handle: Any) -> None:
        ...
