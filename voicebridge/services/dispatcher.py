"""
Request dispatcher: the single entry point for application data operations.

Chooses the remote or local backend once, when it is constructed, and turns
every outcome into an ``ApiResponse`` so callers see one contract whichever
backend is in use:
- Success returns ``ApiResponse(data=...)``
- Expected failures (network, server, auth, storage) return
  ``ApiResponse(error=...)`` with a non-empty message
- Only programmer errors (dispatching before ``initialize()``, unknown
  operations, missing parameters) raise
"""

import asyncio
import time
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx
import structlog

from voicebridge.clients.backends import DataBackend, LocalBackend, RemoteBackend
from voicebridge.clients.local_store import LocalDataStore
from voicebridge.clients.token_store import TokenStore
from voicebridge.config import Settings, settings as default_settings
from voicebridge.errors import DataAccessError, DispatcherNotInitializedError, RequestTimeoutError
from voicebridge.models.api_models import ApiResponse
from voicebridge.observability import DispatchMetrics, configure_logging
from voicebridge.services.auth_gateway import AuthGateway
from voicebridge.services.simulator import ResponseSimulator

logger = structlog.get_logger()


class Operation(str, Enum):
    """Operations understood by ``RequestDispatcher.dispatch``."""

    LOGIN = "login"
    REGISTER = "register"
    LOGOUT = "logout"
    GET_PROFILE = "get_profile"
    UPDATE_PROFILE = "update_profile"
    VOICE_SUBMIT = "voice_submit"
    TEXT_QUERY = "text_query"
    LIST_LESSONS = "list_lessons"
    LIST_HISTORY = "list_history"


REQUIRED_PARAMS: Dict[Operation, tuple] = {
    Operation.LOGIN: ("username", "password"),
    Operation.REGISTER: ("username", "email", "password"),
    Operation.UPDATE_PROFILE: ("data",),
    Operation.VOICE_SUBMIT: ("audio", "language"),
    Operation.TEXT_QUERY: ("text", "language"),
}


class RequestDispatcher:
    """
    Façade over the remote and local data backends.

    The operating mode is decided in the constructor from the configured base
    URL and never changes afterwards. Call ``initialize()`` (or use the
    dispatcher as an async context manager) before dispatching.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        store: Optional[LocalDataStore] = None,
        token_store: Optional[TokenStore] = None,
        simulator: Optional[ResponseSimulator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_logout: Optional[Callable[[], Any]] = None,
        headers: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize the dispatcher.

        Args:
            config: Settings to use (default: the global settings)
            store: Local store for tokens and offline datasets
            token_store: Token store (default: one backed by ``store``)
            simulator: Offline simulator (default: one backed by ``store``)
            transport: httpx transport for the remote backend, mainly for tests
            on_logout: Called when an expired session cannot be refreshed
            headers: Extra headers for every remote request; they never replace auth headers
        """
        self.settings = config or default_settings
        self._offline = self.settings.is_offline_mode

        self.store = store or LocalDataStore(self.settings.storage_dir)
        self.tokens = token_store or TokenStore(self.store)
        self.simulator = simulator or ResponseSimulator(
            self.store,
            latency_scale=self.settings.simulated_latency_scale
        )
        self.transport = transport
        self.on_logout = on_logout
        self.headers = dict(headers or {})

        self.auth: Optional[AuthGateway] = None
        self.backend: Optional[DataBackend] = None
        self.metrics = DispatchMetrics()
        self._initialized = False

    @property
    def is_offline_mode(self) -> bool:
        return self._offline

    @property
    def mode(self) -> str:
        return "offline" if self._offline else "online"

    async def initialize(self) -> None:
        """Build the backend for the configured mode. Safe to call more than once."""
        if self._initialized:
            return

        if self._offline:
            self.store.ensure_seeded()
            self.backend = LocalBackend(self.store, self.simulator)
            logger.info("VoiceBridge running in offline mode with local storage",
                        storage_dir=str(self.store.storage_dir))
        else:
            http_client = httpx.AsyncClient(
                base_url=self.settings.api_base_url,
                timeout=self.settings.request_timeout,
                transport=self.transport
            )
            self.auth = AuthGateway(self.tokens, http_client, on_logout=self.on_logout)
            self.backend = RemoteBackend(http_client, self.auth, extra_headers=self.headers)
            logger.info("VoiceBridge connected to remote backend",
                        base_url=self.settings.api_base_url)

        self._initialized = True

    async def aclose(self) -> None:
        """Close the backend's network resources."""
        if self.backend is not None:
            await self.backend.aclose()
        self._initialized = False
        self.backend = None
        self.auth = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def dispatch(
        self,
        operation: Union[Operation, str],
        params: Optional[Mapping[str, Any]] = None,
        *,
        timeout: Optional[float] = None
    ) -> ApiResponse:
        """
        Run one data operation and normalize its outcome.

        Args:
            operation: Operation to run (enum member or its string value)
            params: Operation parameters
            timeout: Optional deadline in seconds for the whole operation

        Returns:
            ApiResponse with either ``data`` or a non-empty ``error``

        Raises:
            DispatcherNotInitializedError: If ``initialize()`` has not been awaited
            ValueError: If the operation is unknown
            TypeError: If a required parameter is missing
        """
        if not self._initialized or self.backend is None:
            raise DispatcherNotInitializedError("RequestDispatcher.initialize() must be awaited before dispatch")

        operation = Operation(operation)
        params = dict(params or {})
        missing = [name for name in REQUIRED_PARAMS.get(operation, ()) if params.get(name) is None]
        if missing:
            raise TypeError(f"{operation.value} requires parameter(s): {', '.join(missing)}")

        correlation_id = f"dispatch_{uuid.uuid4().hex[:12]}"
        start_time = time.time()

        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            logger.info("Dispatch started", operation=operation.value, backend=self.backend.mode)

            try:
                if timeout is not None:
                    data = await asyncio.wait_for(self._execute(operation, params), timeout)
                else:
                    data = await self._execute(operation, params)
                response = ApiResponse.success(data)
            except asyncio.TimeoutError:
                response = ApiResponse.failure(RequestTimeoutError.default_message)
            except DataAccessError as e:
                response = ApiResponse.failure(e.message)

            processing_time = time.time() - start_time
            self.metrics.record(operation.value, response.ok, processing_time)

            if response.ok:
                logger.info("Dispatch completed",
                            operation=operation.value,
                            process_time_ms=round(processing_time * 1000, 2))
            else:
                logger.warning("Dispatch failed",
                               operation=operation.value,
                               error=response.error,
                               process_time_ms=round(processing_time * 1000, 2))

        return response

    async def _execute(self, operation: Operation, params: Dict[str, Any]) -> Any:
        backend = self.backend

        if operation is Operation.LOGIN:
            result = await backend.login(params["username"], params["password"])
            self.tokens.set(result.tokens)
            return result

        if operation is Operation.REGISTER:
            result = await backend.register(params["username"], params["email"], params["password"])
            self.tokens.set(result.tokens)
            return result

        if operation is Operation.LOGOUT:
            self.tokens.clear()
            return None

        if operation is Operation.GET_PROFILE:
            return await backend.get_profile()

        if operation is Operation.UPDATE_PROFILE:
            return await backend.update_profile(params["data"])

        if operation is Operation.VOICE_SUBMIT:
            return await backend.submit_voice(
                params["audio"],
                params["language"],
                params.get("category"),
                filename=params.get("filename") or "recording"
            )

        if operation is Operation.TEXT_QUERY:
            return await backend.text_query(params["text"], params["language"], params.get("category"))

        if operation is Operation.LIST_LESSONS:
            return await backend.list_lessons(
                language=params.get("language"),
                category=params.get("category"),
                search=params.get("search"),
                page=int(params.get("page") or 1)
            )

        if operation is Operation.LIST_HISTORY:
            return await backend.list_history(page=int(params.get("page") or 1))

        raise ValueError(f"Unsupported operation: {operation.value}")

    # Typed convenience wrappers

    async def login(self, username: str, password: str) -> ApiResponse:
        return await self.dispatch(Operation.LOGIN, {"username": username, "password": password})

    async def register(self, username: str, email: str, password: str) -> ApiResponse:
        return await self.dispatch(Operation.REGISTER, {"username": username, "email": email, "password": password})

    async def logout(self) -> ApiResponse:
        return await self.dispatch(Operation.LOGOUT)

    async def get_profile(self) -> ApiResponse:
        return await self.dispatch(Operation.GET_PROFILE)

    async def update_profile(self, data: Mapping[str, Any]) -> ApiResponse:
        return await self.dispatch(Operation.UPDATE_PROFILE, {"data": data})

    async def submit_voice(self, audio: bytes, language: str, category: Optional[str] = None) -> ApiResponse:
        return await self.dispatch(Operation.VOICE_SUBMIT, {"audio": audio, "language": language, "category": category})

    async def text_query(self, text: str, language: str, category: Optional[str] = None) -> ApiResponse:
        return await self.dispatch(Operation.TEXT_QUERY, {"text": text, "language": language, "category": category})

    async def list_lessons(
        self,
        language: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1
    ) -> ApiResponse:
        return await self.dispatch(
            Operation.LIST_LESSONS,
            {"language": language, "category": category, "search": search, "page": page}
        )

    async def list_history(self, page: int = 1) -> ApiResponse:
        return await self.dispatch(Operation.LIST_HISTORY, {"page": page})

    def get_metrics(self) -> Dict[str, Any]:
        """Dispatch counters plus token refresh counters in online mode."""
        extra = {"mode": self.mode}
        if self.auth is not None:
            extra["refresh_attempts"] = self.auth.refresh_attempts
            extra["refresh_failures"] = self.auth.refresh_failures
        return self.metrics.get_metrics(extra)


# Global dispatcher instance
_dispatcher: Optional[RequestDispatcher] = None


def get_dispatcher() -> RequestDispatcher:
    """
    Get the global request dispatcher instance.

    Logging is configured when the instance is first created. The instance
    still has to be initialized before use.

    Returns:
        RequestDispatcher: The global dispatcher instance
    """
    global _dispatcher
    if _dispatcher is None:
        configure_logging(default_settings.log_level)
        _dispatcher = RequestDispatcher()
    return _dispatcher
