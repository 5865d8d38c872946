"""
A collection owns the identity map for one model type: at most one live
instance per id. Creating with an id that is already present merges the new
data into the existing instance instead of building a second one.

Collections never talk to the notifier about writes. Every successful
create, merge or delete is reported through the owning store's mutation
hook, which decides whether to notify or (inside a sandbox) hold the change.
"""
import logging
from typing import Any, Callable, Dict, Hashable, Iterator, List

from .protocols import ReadableCollection
from .schema import Data, ModelSchema

MutationHook = Callable[[str, str, List[Hashable]], None]
ReadHook = Callable[[str, Hashable | None], None]


class Collection(ReadableCollection):
    def __init__(
        self,
        type_name: str,
        schema: ModelSchema,
        on_mutation: MutationHook,
        on_read: ReadHook,
    ):
        self.type_name = type_name
        self.schema = schema
        self._instances: Dict[Hashable, Any] = {}
        self._on_mutation = on_mutation
        self._on_read = on_read

    def create(self, data: Data) -> Any:
        """
        Creates the instance for `data`'s id, or merges `data` into the one
        that already exists. Either way the returned object is the single
        live instance for that id.
        """
        entity_id = self.schema.identify(data)
        instance = self._instances.get(entity_id)

        if instance is None:
            # Built and deserialized before insertion, so a failure leaves no trace.
            instance = self.schema.build(data)
            self._instances[entity_id] = instance
            reason = "create"
        else:
            self.schema.deserialize(instance, data)
            reason = "update"

        logging.debug(f"{self.type_name}: {reason} {entity_id!r}")
        self._on_mutation(reason, self.type_name, [entity_id])
        return instance

    def get_or_create(self, data: Data) -> Any:
        """Returns the existing instance untouched, creating it only if absent."""
        entity_id = self.schema.identify(data)
        if entity_id in self._instances:
            self._on_read(self.type_name, entity_id)
            return self._instances[entity_id]
        return self.create(data)

    def get_by_id(self, entity_id: Hashable) -> Any | None:
        self._on_read(self.type_name, entity_id)
        return self._instances.get(entity_id)

    def get_all(self) -> List[Any]:
        self._on_read(self.type_name, None)
        return list(self._instances.values())

    def delete(self, entity_id: Hashable) -> bool:
        if entity_id not in self._instances:
            return False
        del self._instances[entity_id]
        logging.debug(f"{self.type_name}: delete {entity_id!r}")
        self._on_mutation("delete", self.type_name, [entity_id])
        return True

    def ids(self) -> List[Hashable]:
        self._on_read(self.type_name, None)
        return list(self._instances)

    def __len__(self) -> int:
        self._on_read(self.type_name, None)
        return self.count()

    def count(self) -> int:
        """Number of instances, without registering a read."""
        return len(self._instances)

    def __contains__(self, entity_id: Hashable) -> bool:
        self._on_read(self.type_name, entity_id)
        return entity_id in self._instances

    def __iter__(self) -> Iterator[Any]:
        return iter(self.get_all())

    def serialize(self) -> List[Dict[str, Any]]:
        return [self.schema.serialize(instance) for instance in self._instances.values()]

    def restore(self, rows: List[Dict[str, Any]]) -> List[Hashable]:
        """
        Makes the collection match `rows`, in their order, without reporting
        through the mutation hook. Instances whose id survives are merged in
        place so that references held by consumers stay valid.

        Returns the ids that were added, removed or changed.
        """
        previous = self._instances
        restored: Dict[Hashable, Any] = {}
        changed: List[Hashable] = []

        for data in rows:
            entity_id = self.schema.identify(data)
            instance = restored.get(entity_id, previous.get(entity_id))
            if instance is None:
                instance = self.schema.build(data)
                changed.append(entity_id)
            else:
                before = self.schema.serialize(instance)
                self.schema.deserialize(instance, data)
                if entity_id not in changed and self.schema.serialize(instance) != before:
                    changed.append(entity_id)
            restored[entity_id] = instance

        changed.extend(entity_id for entity_id in previous if entity_id not in restored)
        self._instances = restored
        return changed
