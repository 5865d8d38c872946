"""
The store aggregates one collection per configured model type and owns the
history and sandbox machinery layered on top of them.

All writes funnel through `Store._mutated`, the single completion hook the
collections call. Outside a sandbox it bumps the store version and makes
exactly one `notify` call; inside a sandbox it only records the change so
the sandbox can report it (or drop it) as a whole.
"""
import logging
import zlib
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, Hashable, List, Set, Tuple

import pydantic_core

from .collection import Collection
from .errors import SandboxActiveError, SchemaVersionError, UnknownModelTypeError
from .history import History
from .models import Change, Snapshot, StoreConfig, StoreState
from .notifier import InProcessNotifier
from .protocols import Listener, Notifier
from .sandbox import SandboxContext, open_sandbox
from .schema import Data


class Store:
    def __init__(self, config: StoreConfig | Dict[str, Any], notifier: Notifier | None = None):
        self.config = (
            config if isinstance(config, StoreConfig) else StoreConfig.model_validate(config)
        )
        self.schema_version = self.config.schema_version
        self.notifier = notifier if notifier is not None else InProcessNotifier()
        self.version = 0
        self._sandbox: SandboxContext | None = None
        self.collections: Dict[str, Collection] = {
            type_name: Collection(type_name, schema, self._mutated, self.notifier.observed)
            for type_name, schema in self.config.models.items()
        }
        self.history = History(self, limit=self.config.history_limit)
        logging.info(
            f"Store created with models {list(self.collections)} at schema version {self.schema_version}"
        )

    @property
    def in_sandbox(self) -> bool:
        return self._sandbox is not None

    # Collection access

    def collection(self, type_name: str) -> Collection:
        try:
            return self.collections[type_name]
        except KeyError:
            logging.error(f"Unknown model type requested: {type_name!r}")
            raise UnknownModelTypeError(type_name) from None

    __getitem__ = collection

    def create(self, type_name: str, data: Data) -> Any:
        return self.collection(type_name).create(data)

    def get(self, type_name: str, entity_id: Hashable) -> Any | None:
        return self.collection(type_name).get_by_id(entity_id)

    def delete(self, type_name: str, entity_id: Hashable) -> bool:
        return self.collection(type_name).delete(entity_id)

    # Mutation hook and notification

    def _mutated(self, reason: str, type_name: str, ids: List[Hashable]):
        if self._sandbox is not None:
            self._sandbox.record(type_name, ids)
            return
        self._emit(reason, {type_name: ids})

    def _emit(self, reason: str, changes: Dict[str, List[Hashable]]):
        self.version += 1
        change = Change(
            reason=reason,
            changes=changes,
            version=self.version,
            timestamp=datetime.now(timezone.utc),
        )
        self.notifier.notify(change)

    def subscribe(self, listener: Listener, scope: str = "@all") -> Callable[[], None]:
        """Calls `listener` with every change touching `scope`. Returns an unsubscribe function."""
        self._check_scope(scope)
        return self.notifier.add_listener(listener, scope)

    async def watch(self, scope: str = "@all") -> AsyncIterator[Change]:
        """Yields changes touching `scope` as they happen, until the consumer stops iterating."""
        self._check_scope(scope)
        queue = self.notifier.subscribe(scope)
        try:
            while True:
                yield await queue.get()
        finally:
            self.notifier.unsubscribe(scope, queue)

    def track_reads(self) -> AbstractContextManager[Set[Tuple[str, Hashable | None]]]:
        return self.notifier.track_reads()

    def _check_scope(self, scope: str):
        if scope != "@all":
            self.collection(scope)

    # Serialization, snapshot and restore

    def serialize(self) -> StoreState:
        return StoreState(
            schema_version=self.schema_version,
            collections={
                type_name: collection.serialize()
                for type_name, collection in self.collections.items()
            },
        )

    def to_json(self) -> Dict[str, Any]:
        return self.serialize().model_dump()

    def snapshot(self) -> Snapshot:
        state = zlib.compress(pydantic_core.to_json(self.serialize()))
        return Snapshot(
            version=self.version,
            schema_version=self.schema_version,
            state=state,
            timestamp=datetime.now(timezone.utc),
        )

    def _decode(self, snapshot: Snapshot) -> StoreState:
        return StoreState.model_validate_json(zlib.decompress(snapshot.state))

    def _apply(self, state: StoreState) -> Dict[str, List[Hashable]]:
        """Makes every collection match `state`. Returns the changed ids per model type."""
        if state.schema_version != self.schema_version:
            logging.error(
                f"Refusing state at schema version {state.schema_version}, store uses {self.schema_version}"
            )
            raise SchemaVersionError(
                f"State has schema version {state.schema_version}, expected {self.schema_version}"
            )
        # Check every type and id before touching any collection.
        for type_name, rows in state.collections.items():
            schema = self.collection(type_name).schema
            for row in rows:
                schema.identify(row)

        changes: Dict[str, List[Hashable]] = {}
        for type_name, collection in self.collections.items():
            changed = collection.restore(state.collections.get(type_name, []))
            if changed:
                changes[type_name] = changed
        return changes

    def _restore(self, snapshot: Snapshot):
        changes = self._apply(self._decode(snapshot))
        self._emit("restore", changes)

    def _revert(self, snapshot: Snapshot):
        changes = self._apply(self._decode(snapshot))
        logging.debug(f"Reverted {sum(len(ids) for ids in changes.values())} instances")

    def restore(self, snapshot: Snapshot):
        """Returns the store to `snapshot`, with one change notification."""
        self._ensure_idle("restore")
        self._restore(snapshot)

    def load(self, data: StoreState | Dict[str, Any]):
        """Replaces the store's contents with serialized state, such as the output of `to_json`."""
        self._ensure_idle("load")
        state = data if isinstance(data, StoreState) else StoreState.model_validate(data)
        changes = self._apply(state)
        self._emit("restore", changes)
        logging.info(f"Loaded state, store now at version {self.version}")

    def _ensure_idle(self, operation: str):
        if self.in_sandbox:
            logging.error(f"Store {operation} attempted inside a sandbox")
            raise SandboxActiveError(f"Cannot {operation} while a sandbox is open")

    # Sandboxes

    def sandboxed(self) -> AbstractContextManager[SandboxContext]:
        """
        Context-manager form of `sandbox`:

            with store.sandboxed() as ctx:
                store.create("user", {"id": "u1"})
                if looks_good():
                    ctx.commit()
        """
        return open_sandbox(self)

    def sandbox(self, fn: Callable[[SandboxContext], Any]) -> Any:
        """Runs `fn(ctx)` in a sandbox and returns its result."""
        with self.sandboxed() as ctx:
            return fn(ctx)

    def metrics(self) -> Dict[str, Any]:
        counts = {type_name: c.count() for type_name, c in self.collections.items()}
        return {
            "version": self.version,
            "schema_version": self.schema_version,
            "instance_count": sum(counts.values()),
            "collections": counts,
            "undo_depth": self.history.undo_depth,
            "redo_depth": self.history.redo_depth,
            "in_sandbox": self.in_sandbox,
        }
