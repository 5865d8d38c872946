import pytest
from pydantic import BaseModel

from versioned_store import Store, attribute_schema, pydantic_schema


class User:
    def __init__(self):
        self.id = None
        self.name = None
        self.tags = []


class Piece(BaseModel):
    id: str
    kind: str
    x: int
    y: int
    captured: bool = False


@pytest.fixture
def config():
    return {
        "schemaVersion": 3,
        "models": {
            "user": attribute_schema(User, ["name", "tags"]),
            "piece": pydantic_schema(Piece),
        },
    }


@pytest.fixture
def store(config):
    return Store(config)


@pytest.fixture
def changes(store):
    """Every change the store emits, in order."""
    seen = []
    store.subscribe(seen.append)
    return seen
