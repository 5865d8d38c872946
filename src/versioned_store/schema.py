"""
Model schemas describe how the store builds, identifies and (de)serializes
the instances of one model type.

A schema is a plain value made of four callables rather than a base class
that models have to inherit from. Specialised schemas are produced by
composing an existing one with `ModelSchema.derive`, so any object type can
live in the store as long as these operations exist for it:

- `factory()` returns a blank instance,
- `identity(data)` extracts the id from raw input data,
- `serialize(instance)` returns plain, JSON-compatible data,
- `deserialize(instance, data)` merges data into an instance in place.

`deserialize` must be idempotent, and `serialize` must be its left inverse:
`deserialize(x, serialize(x))` changes nothing observable.
"""
import copy
import logging
from operator import itemgetter
from typing import Any, Callable, Dict, Hashable, Iterable, Mapping, Type

from pydantic import BaseModel, ConfigDict

from .errors import InvalidIdentityError

Data = Mapping[str, Any]


class ModelSchema(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    factory: Callable[[], Any]
    identity: Callable[[Data], Hashable]
    serialize: Callable[[Any], Dict[str, Any]]
    deserialize: Callable[[Any, Data], None]

    def identify(self, data: Data) -> Hashable:
        """Runs the identity selector, rejecting missing or empty ids."""
        try:
            entity_id = self.identity(data)
        except (KeyError, TypeError) as e:
            logging.error(f"Identity selector failed for {data!r}: {e!r}")
            raise InvalidIdentityError(f"Could not extract an id from {data!r}") from e

        if entity_id is None or entity_id == "":
            logging.error(f"Identity selector returned {entity_id!r} for {data!r}")
            raise InvalidIdentityError(f"Empty id extracted from {data!r}")
        try:
            hash(entity_id)
        except TypeError as e:
            raise InvalidIdentityError(f"Id {entity_id!r} is not hashable") from e
        return entity_id

    def build(self, data: Data) -> Any:
        instance = self.factory()
        self.deserialize(instance, data)
        return instance

    def derive(
        self,
        *,
        factory: Callable[[], Any] | None = None,
        identity: Callable[[Data], Hashable] | None = None,
        serialize: Callable[[Any], Dict[str, Any]] | None = None,
        deserialize: Callable[[Any, Data], None] | None = None,
    ) -> "ModelSchema":
        """
        Returns a new schema layered on top of this one.

        `factory` and `identity` replace the base callables. `serialize` output
        is merged over the base output, and `deserialize` runs after the base
        one, so a derived schema only has to describe the fields it adds.
        """
        base_serialize = self.serialize
        base_deserialize = self.deserialize
        update: Dict[str, Any] = {}

        if factory is not None:
            update["factory"] = factory
        if identity is not None:
            update["identity"] = identity
        if serialize is not None:
            def composed_serialize(instance: Any) -> Dict[str, Any]:
                return {**base_serialize(instance), **serialize(instance)}
            update["serialize"] = composed_serialize
        if deserialize is not None:
            def composed_deserialize(instance: Any, data: Data) -> None:
                base_deserialize(instance, data)
                deserialize(instance, data)
            update["deserialize"] = composed_deserialize

        return self.model_copy(update=update)


def field_identity(name: str = "id") -> Callable[[Data], Hashable]:
    return itemgetter(name)


def attribute_schema(
    factory: Callable[[], Any], fields: Iterable[str], id_field: str = "id"
) -> ModelSchema:
    """Schema for plain objects whose state lives in named attributes."""
    names = tuple(fields)
    if id_field not in names:
        names = (id_field, *names)

    def serialize(instance: Any) -> Dict[str, Any]:
        # Unset attributes serialize as None so a restore can clear them again.
        return {name: copy.deepcopy(getattr(instance, name, None)) for name in names}

    def deserialize(instance: Any, data: Data) -> None:
        # Copy values so instances never alias the caller's containers.
        for name in names:
            if name in data:
                setattr(instance, name, copy.deepcopy(data[name]))

    return ModelSchema(
        factory=factory,
        identity=field_identity(id_field),
        serialize=serialize,
        deserialize=deserialize,
    )


def pydantic_schema(model_cls: Type[BaseModel], id_field: str = "id") -> ModelSchema:
    """
    Schema for Pydantic models.

    Incoming data is merged over the instance's current field values and
    validated as a whole before anything is assigned, so a `ValidationError`
    leaves the instance exactly as it was.
    """

    def factory() -> BaseModel:
        return model_cls.model_construct()

    def serialize(instance: BaseModel) -> Dict[str, Any]:
        return instance.model_dump(mode="json")

    def deserialize(instance: BaseModel, data: Data) -> None:
        current = {
            name: value
            for name, value in instance.__dict__.items()
            if name in model_cls.model_fields
        }
        merged = model_cls.model_validate({**current, **data})
        for name, value in merged:
            object.__setattr__(instance, name, value)

    return ModelSchema(
        factory=factory,
        identity=field_identity(id_field),
        serialize=serialize,
        deserialize=deserialize,
    )
