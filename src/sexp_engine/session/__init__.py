"""Document sessions and the host editor boundary."""

from .host import ChangeListener, EditBatch, EditorHost, InMemoryEditor
from .session import DocumentSession, SessionRegistry

__all__ = [
    "ChangeListener",
    "DocumentSession",
    "EditBatch",
    "EditorHost",
    "InMemoryEditor",
    "SessionRegistry",
]
