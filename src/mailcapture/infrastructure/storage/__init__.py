"""Filesystem storage for recipient artifacts and weekly indexes."""

from .keyed_lock import KeyedLock
from .recipient_store import RecipientStore
from .sanitize import sanitize_filename
from .weekly_index import IndexStorageError, WeeklyIndexManager

__all__ = [
    "KeyedLock",
    "RecipientStore",
    "sanitize_filename",
    "IndexStorageError",
    "WeeklyIndexManager",
]
