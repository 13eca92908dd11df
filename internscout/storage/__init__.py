"""
Storage backends for InternScout.
"""

from internscout.storage.base import PostingStore, StoreError
from internscout.storage.sqlite import SqlitePostingStore

__all__ = ["PostingStore", "StoreError", "SqlitePostingStore"]
