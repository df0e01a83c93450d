"""Draft persistence, versioning and scheduling."""

from fillforms.drafts.memory_store import InMemoryDraftStore
from fillforms.drafts.scheduler import AutoValidationTimer, DebouncedTask, SupersessionGuard
from fillforms.drafts.session import DraftPersistence, DraftSource

__all__ = [
    "AutoValidationTimer",
    "DebouncedTask",
    "DraftPersistence",
    "DraftSource",
    "InMemoryDraftStore",
    "SupersessionGuard",
]
