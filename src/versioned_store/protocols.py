"""
This module defines the abstract protocols at the store boundary.

By using `Protocol`-based interfaces, the store is decoupled from whatever
reactivity layer sits on top of it. The store only ever calls `notify` once
per logically complete mutation and `observed` on every read; a UI framework
can supply its own notifier that schedules re-renders, while the bundled
`Notifier` dispatches to callbacks and asyncio queues.
"""
import asyncio
from typing import Any, Callable, ContextManager, Hashable, List, Protocol, Set, Tuple

from .models import Change

Listener = Callable[[Change], Any]
ReadObserver = Callable[[str, Hashable | None], Any]


class Notifier(Protocol):
    """
    Defines the contract for reporting reads and writes to observers.
    `observed(scope, None)` means the whole collection was read.
    """
    def notify(self, change: Change) -> None:
        ...

    def observed(self, scope: str, entity_id: Hashable | None) -> None:
        ...

    def subscribe(self, scope: str) -> asyncio.Queue:
        ...

    def unsubscribe(self, scope: str, queue: asyncio.Queue) -> None:
        ...

    def add_listener(self, listener: Listener, scope: str = "@all") -> Callable[[], None]:
        ...

    def track_reads(self) -> ContextManager[Set[Tuple[str, Hashable | None]]]:
        ...


class ReadableCollection(Protocol):
    """The read-only view of one model type that consumers depend on."""

    type_name: str

    def get_by_id(self, entity_id: Hashable) -> Any | None:
        ...

    def get_all(self) -> List[Any]:
        ...
