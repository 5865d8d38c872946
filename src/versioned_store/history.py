"""
Undo/redo over whole-store snapshots.

`commit()` records the current state as a checkpoint. The most recent
checkpoint is the history's head; older ones sit on the undo stack. `undo()`
first discards uncommitted edits made since the head, and otherwise steps
back to the previous checkpoint. Every state left behind by `undo()` goes
onto the redo stack, which `commit()` clears. `redo()` keeps uncommitted
edits on the undo stack, so the next `undo()` returns to them.

Restores merge into existing instances by id, so references held by
consumers stay valid across undo and redo.
"""
import logging
from typing import TYPE_CHECKING, List

from .errors import SandboxActiveError
from .models import Snapshot

if TYPE_CHECKING:
    from .store import Store


class History:
    def __init__(self, store: "Store", limit: int | None = None):
        self._store = store
        self._limit = limit
        self._head: Snapshot | None = None
        self._undo: List[Snapshot] = []
        self._redo: List[Snapshot] = []

    def _ensure_idle(self, operation: str):
        if self._store.in_sandbox:
            logging.error(f"History {operation} attempted inside a sandbox")
            raise SandboxActiveError(f"Cannot {operation} while a sandbox is open")

    def _push_undo(self, snapshot: Snapshot):
        self._undo.append(snapshot)
        if self._limit is not None and len(self._undo) > self._limit:
            del self._undo[: len(self._undo) - self._limit]

    @property
    def is_dirty(self) -> bool:
        """True when the store has edits that were not committed since the head."""
        return self._head is not None and self._store.snapshot().state != self._head.state

    @property
    def can_undo(self) -> bool:
        return bool(self._undo) or self.is_dirty

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def commit(self) -> Snapshot:
        """Records the current state as a checkpoint. Identical commits are not merged."""
        self._ensure_idle("commit")
        snapshot = self._store.snapshot()
        if self._head is not None:
            self._push_undo(self._head)
        self._head = snapshot
        self._redo.clear()
        logging.info(f"History commit at store version {snapshot.version}, undo depth {len(self._undo)}")
        return snapshot

    def undo(self) -> bool:
        """Returns False, changing nothing, when there is nothing to undo."""
        self._ensure_idle("undo")
        if self._head is None:
            logging.warning("Undo requested before any commit; ignoring")
            return False

        current = self._store.snapshot()
        if current.state != self._head.state:
            target = self._head
        elif self._undo:
            target = self._undo.pop()
        else:
            logging.warning("Undo requested with an empty undo stack; ignoring")
            return False

        self._redo.append(current)
        self._head = target
        self._store._restore(target)
        logging.info(f"Undo restored state from version {target.version}")
        return True

    def redo(self) -> bool:
        """Returns False, changing nothing, when there is nothing to redo."""
        self._ensure_idle("redo")
        if not self._redo:
            logging.warning("Redo requested with an empty redo stack; ignoring")
            return False

        # Uncommitted edits become their own checkpoint above the head.
        current = self._store.snapshot()
        target = self._redo.pop()
        self._push_undo(self._head)
        if current.state != self._head.state:
            self._push_undo(current)
        self._head = target
        self._store._restore(target)
        logging.info(f"Redo restored state from version {target.version}")
        return True

    def clear(self):
        self._ensure_idle("clear")
        self._head = None
        self._undo.clear()
        self._redo.clear()
