"""Client modules for local storage and token persistence."""

from voicebridge.clients.local_store import (
    HISTORY_LIMIT,
    STORAGE_KEYS,
    LocalDataStore
)

from voicebridge.clients.token_store import TokenStore

__all__ = [
    "HISTORY_LIMIT",
    "STORAGE_KEYS",
    "LocalDataStore",
    "TokenStore"
]
