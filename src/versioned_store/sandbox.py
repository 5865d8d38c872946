"""
Sandboxed transactions: run a block of mutations against the live store,
then keep them only if the block asked for it.

While a sandbox is open, writes still land on the live collections so code
inside the block reads its own changes, but no change notification leaves
the store. On exit the store either emits one notification covering the
whole block (committed) or restores the snapshot captured on entry and
emits nothing (not committed, or the block raised).
"""
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, Hashable, Iterable, Iterator, List

from .errors import SandboxReentrancyError
from .models import Snapshot

if TYPE_CHECKING:
    from .store import Store


class SandboxContext:
    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot
        self.committed = False
        self._pending: Dict[str, List[Hashable]] = {}

    def commit(self):
        """Keep this sandbox's mutations once the block finishes."""
        self.committed = True

    def record(self, type_name: str, ids: Iterable[Hashable]):
        pending = self._pending.setdefault(type_name, [])
        for entity_id in ids:
            if entity_id not in pending:
                pending.append(entity_id)

    @property
    def pending(self) -> Dict[str, List[Hashable]]:
        return {type_name: list(ids) for type_name, ids in self._pending.items()}


@contextmanager
def open_sandbox(store: "Store") -> Iterator[SandboxContext]:
    if store.in_sandbox:
        logging.error("Refusing to open a sandbox inside another sandbox")
        raise SandboxReentrancyError("Sandboxes cannot be nested")

    ctx = SandboxContext(store.snapshot())
    store._sandbox = ctx
    logging.debug(f"Sandbox opened at store version {ctx.snapshot.version}")
    try:
        yield ctx
    except BaseException as e:
        store._revert(ctx.snapshot)
        logging.info(f"Sandbox rolled back after {type(e).__name__}")
        raise
    else:
        if ctx.committed:
            # Leave sandbox state first so the notification is not held.
            store._sandbox = None
            store._emit("sandbox", ctx.pending)
            logging.info(f"Sandbox committed, store now at version {store.version}")
        else:
            store._revert(ctx.snapshot)
            logging.info("Sandbox discarded")
    finally:
        store._sandbox = None
