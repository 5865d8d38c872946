import asyncio
import logging
from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Callable, Deque, Dict, Hashable, Iterator, List, Set, Tuple

from .models import Change
from .protocols import Listener, Notifier, ReadObserver


class InProcessNotifier(Notifier):
    """
    Dispatches each change to the callbacks and asyncio queues subscribed to
    the scopes it touches. The "@all" scope receives every change.

    A listener that mutates the store while a change is being dispatched does
    not re-enter dispatch: the resulting change is queued and delivered once
    the current one has reached every subscriber.
    """

    def __init__(self):
        self._watchers: Dict[str, List[asyncio.Queue]] = defaultdict(list)
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._read_observers: List[ReadObserver] = []
        self._pending: Deque[Change] = deque()
        self._dispatching = False

    def notify(self, change: Change):
        self._pending.append(change)
        if self._dispatching:
            logging.debug(f"Deferring change v{change.version} until current dispatch completes")
            return

        # The queue is drained before the first listener error is re-raised.
        error: Exception | None = None
        self._dispatching = True
        try:
            while self._pending:
                queued = self._pending.popleft()
                try:
                    self._dispatch(queued)
                except Exception as e:
                    logging.error(f"Listener failed on change v{queued.version}: {e!r}")
                    if error is None:
                        error = e
        finally:
            self._dispatching = False
        if error is not None:
            raise error

    def _dispatch(self, change: Change):
        for scope, queues in list(self._watchers.items()):
            if change.touches(scope):
                for queue in list(queues):
                    queue.put_nowait(change)
        for scope, listeners in list(self._listeners.items()):
            if change.touches(scope):
                for listener in list(listeners):
                    listener(change)

    def add_listener(self, listener: Listener, scope: str = "@all") -> Callable[[], None]:
        """Registers a callback and returns a function that removes it again."""
        self._listeners[scope].append(listener)

        def remove():
            self.remove_listener(listener, scope)

        return remove

    def remove_listener(self, listener: Listener, scope: str = "@all"):
        if scope in self._listeners and listener in self._listeners[scope]:
            self._listeners[scope].remove(listener)
            if not self._listeners[scope]:
                del self._listeners[scope]

    def subscribe(self, scope: str) -> asyncio.Queue:
        """Allows an async watcher to subscribe to a scope."""
        queue = asyncio.Queue()
        self._watchers[scope].append(queue)
        return queue

    def unsubscribe(self, scope: str, queue: asyncio.Queue):
        """Removes a watcher's queue."""
        if scope in self._watchers and queue in self._watchers[scope]:
            self._watchers[scope].remove(queue)
            if not self._watchers[scope]:
                del self._watchers[scope]

    def observed(self, scope: str, entity_id: Hashable | None):
        for observer in list(self._read_observers):
            observer(scope, entity_id)

    def add_read_observer(self, observer: ReadObserver) -> Callable[[], None]:
        self._read_observers.append(observer)
        return lambda: self._read_observers.remove(observer)

    @contextmanager
    def track_reads(self) -> Iterator[Set[Tuple[str, Hashable | None]]]:
        """
        Collects the `(scope, id)` pairs read inside the block. An id of None
        stands for a read of the whole collection.
        """
        reads: Set[Tuple[str, Hashable | None]] = set()
        remove = self.add_read_observer(lambda scope, entity_id: reads.add((scope, entity_id)))
        try:
            yield reads
        finally:
            remove()
