"""Change-feed primitives.

A change feed delivers row-level mutation notifications
(``{table, operation, old, new}``) to subscribers.  Repositories publish,
realtime consumers subscribe.  Implementations live in
``shared.infrastructure.feed``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Collection, Mapping, Optional, Protocol


class ChangeOperation(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """One committed row mutation (immutable)."""

    table: str
    operation: ChangeOperation
    old: Optional[Mapping[str, Any]] = None
    new: Optional[Mapping[str, Any]] = None
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def row(self) -> Mapping[str, Any]:
        """The most recent image of the row (``old`` for deletes)."""
        return self.new or self.old or {}

    def value(self, column: str) -> Any:
        return self.row.get(column)


ChangeHandler = Callable[[ChangeEvent], None]


class FeedUnavailable(Exception):
    """The change feed connection is down; subscribers must fall back to polling."""


class ISubscription(Protocol):
    table: str

    @property
    def active(self) -> bool: ...

    def unsubscribe(self) -> None: ...


class IChangeFeed(Protocol):
    """Change feed interface."""

    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        row_filter: Optional[Mapping[str, Any]] = None,
        operations: Optional[Collection[ChangeOperation]] = None,
    ) -> ISubscription: ...

    def unsubscribe(self, subscription: ISubscription) -> None: ...

    def publish(self, event: ChangeEvent) -> None: ...
