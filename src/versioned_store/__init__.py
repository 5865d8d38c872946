# versioned_store package

from .collection import Collection
from .errors import (
    InvalidIdentityError,
    SandboxActiveError,
    SandboxReentrancyError,
    SchemaVersionError,
    StoreError,
    UnknownModelTypeError,
)
from .history import History
from .models import Change, Snapshot, StoreConfig, StoreState
from .notifier import InProcessNotifier
from .sandbox import SandboxContext
from .schema import ModelSchema, attribute_schema, field_identity, pydantic_schema
from .store import Store

__all__ = [
    "Store",
    "StoreConfig",
    "StoreState",
    "Snapshot",
    "Change",
    "Collection",
    "History",
    "SandboxContext",
    "ModelSchema",
    "attribute_schema",
    "pydantic_schema",
    "field_identity",
    "InProcessNotifier",
    "StoreError",
    "InvalidIdentityError",
    "UnknownModelTypeError",
    "SandboxReentrancyError",
    "SandboxActiveError",
    "SchemaVersionError",
]
