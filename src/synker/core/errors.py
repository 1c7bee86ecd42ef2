# src/synker/core/errors.py

"""
Errors raised by the entity store.

All of them are local and recoverable: the store raises before mutating
anything, so a caller that catches one sees the store exactly as it was.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for entity store failures."""


class NotFoundError(StoreError, LookupError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateKeyError(StoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"duplicate key: {key}")
        self.key = key


class InvalidStateError(StoreError, ValueError):
    """The operation is not valid for the entity's current state or ownership."""
