"""
Access/refresh token handling for the remote backend.

Computes the Authorization header from the stored tokens, exchanges the
refresh token for a new access token, and forces a logout when that
exchange fails.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from voicebridge.clients.token_store import TokenStore

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/auth/refresh"


class AuthGateway:
    """
    Token lifecycle for remote calls.

    Concurrent callers that hit an expired token share a single in-flight
    refresh instead of each sending their own.
    """

    def __init__(
        self,
        token_store: TokenStore,
        http_client: httpx.AsyncClient,
        on_logout: Optional[Callable[[], Any]] = None
    ):
        """
        Initialize the gateway.

        Args:
            token_store: Where the token pair lives
            http_client: Client bound to the backend's base URL
            on_logout: Called after a forced logout (e.g. to navigate to the login screen)
        """
        self.token_store = token_store
        self.http_client = http_client
        self.on_logout = on_logout
        self._refresh_task: Optional[asyncio.Task] = None

        self.refresh_attempts = 0
        self.refresh_failures = 0

    def headers(self) -> Dict[str, str]:
        """Authorization header for the current access token, or an empty mapping."""
        tokens = self.token_store.get()
        return {"Authorization": f"Bearer {tokens.access}"} if tokens else {}

    async def refresh(self) -> bool:
        """
        Exchange the refresh token for a new access token.

        Only the access token is replaced; the refresh token is kept. Callers
        arriving while a refresh is running await that same refresh.

        Returns:
            True if a new access token was stored, False on any failure
        """
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._refresh_once())
            self._refresh_task = task
            task.add_done_callback(self._clear_refresh_task)
        else:
            logger.debug("Joining in-flight token refresh")

        # Shielded so one caller being cancelled does not cancel the shared refresh
        return await asyncio.shield(task)

    def _clear_refresh_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _refresh_once(self) -> bool:
        self.refresh_attempts += 1
        tokens = self.token_store.get()
        if not tokens or not tokens.refresh:
            logger.info("No refresh token available")
            self.refresh_failures += 1
            return False

        try:
            response = await self.http_client.post(
                REFRESH_PATH,
                json={"refresh": tokens.refresh},
                headers={"Content-Type": "application/json"}
            )
        except httpx.HTTPError as e:
            logger.error(f"Token refresh failed: {e}")
            self.refresh_failures += 1
            return False

        if not response.is_success:
            logger.warning(f"Token refresh rejected with status {response.status_code}")
            self.refresh_failures += 1
            return False

        try:
            access = response.json()["access"]
            refreshed = self.token_store.update_access(access)
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.error(f"Token refresh returned an unusable payload: {e}")
            self.refresh_failures += 1
            return False

        if not refreshed:
            # Tokens were cleared while the refresh was in flight
            self.refresh_failures += 1
            return False

        logger.info("Access token refreshed")
        return True

    def force_logout(self) -> None:
        """Clear the stored tokens and hand navigation to the logout callback."""
        self.token_store.clear()
        logger.warning("Session expired; tokens cleared")

        if self.on_logout is not None:
            try:
                self.on_logout()
            except Exception as e:
                logger.error(f"Logout callback failed: {e}")
