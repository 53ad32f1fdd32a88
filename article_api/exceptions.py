"""
Domain errors raised by the service layer.

Routers translate these into HTTP responses; services never import
FastAPI.
"""
import uuid
from typing import Iterable


class UnknownTagsError(Exception):
    """One or more referenced tag ids do not exist."""

    def __init__(self, missing: Iterable[uuid.UUID]) -> None:
        self.missing = list(missing)
        super().__init__("Unknown tags: " + ", ".join(str(t) for t in self.missing))


class TagNameConflictError(Exception):
    """Another tag already uses this name (case-insensitively)."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A tag named {name!r} already exists")
