from __future__ import annotations


class StoreError(Exception):
    """Base class for record store contract violations."""


class InvalidCollectionError(StoreError, ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid collection: {name}")
        self.name = name


class InvalidPathError(StoreError, ValueError):
    pass


class CorruptDataError(StoreError):
    def __init__(self, name: str, path, reason: Exception | None = None) -> None:
        super().__init__(f"Collection {name!r} at {path} is unreadable: {reason}")
        self.name = name
        self.path = path
        self.reason = reason
