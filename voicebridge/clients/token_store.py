"""Durable storage of the current access/refresh token pair."""

import logging
from typing import Optional

from pydantic import ValidationError

from voicebridge.clients.local_store import STORAGE_KEYS, LocalDataStore
from voicebridge.models.api_models import AuthTokens

logger = logging.getLogger(__name__)


class TokenStore:
    """
    Keeps the token pair in a LocalDataStore.

    The pair is written and cleared as a unit. A persisted value that cannot be
    parsed, or that is missing either token, reads as no tokens at all.
    """

    def __init__(self, store: LocalDataStore):
        self.store = store
        self._key = STORAGE_KEYS["TOKENS"]

    def get(self) -> Optional[AuthTokens]:
        raw = self.store.get(self._key)
        if raw is None:
            return None
        try:
            return AuthTokens.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring malformed persisted tokens")
            return None

    def set(self, tokens: Optional[AuthTokens]) -> None:
        if tokens is None:
            self.store.remove(self._key)
        else:
            self.store.set(self._key, tokens.model_dump())

    def clear(self) -> None:
        self.set(None)

    def update_access(self, access: str) -> bool:
        """Replace the access token, keeping the refresh token. False if no pair is stored."""
        current = self.get()
        if current is None:
            return False
        self.set(AuthTokens(access=access, refresh=current.refresh))
        return True
