"""
Exception types raised by the store.

Lookups that miss return `None` instead of raising; the errors below are
reserved for bad input, configuration mistakes and transaction-protocol
violations, which always propagate to the caller.
"""


class StoreError(Exception):
    """Base class for every error raised by the store."""


class InvalidIdentityError(StoreError, ValueError):
    """The identity selector produced no usable id for the given data."""


class UnknownModelTypeError(StoreError, KeyError):
    """An operation named a model type the store was not configured with."""

    def __init__(self, type_name: str):
        super().__init__(type_name)
        self.type_name = type_name

    def __str__(self) -> str:
        return f"Unknown model type: {self.type_name!r}"


class SandboxReentrancyError(StoreError, RuntimeError):
    """A sandbox was opened while another one was still running."""


class SandboxActiveError(StoreError, RuntimeError):
    """A history or restore operation was attempted inside a sandbox."""


class SchemaVersionError(StoreError, ValueError):
    """Serialized state carries a schema version this store does not use."""
