"""
Data backends behind the request dispatcher.

Two implementations of one contract:
- RemoteBackend talks to the HTTP API through httpx, with auth headers and
  a single retry after a successful token refresh
- LocalBackend serves everything from the local store and the simulator

Both return the same models and raise only ``DataAccessError`` subclasses
for expected failures.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from voicebridge.clients.local_store import STORAGE_KEYS, LocalDataStore
from voicebridge.clients.mock_data import MOCK_ACCESS_TOKEN, MOCK_LESSONS, MOCK_REFRESH_TOKEN, MOCK_USER
from voicebridge.errors import AuthError, NetworkError, RequestTimeoutError, ServerError
from voicebridge.models.api_models import (
    PROFILE_FIELDS,
    AuthResult,
    Lesson,
    PagedResult,
    QueryRecord,
    TextQueryResult,
    User,
    VoiceQueryResult,
)
from voicebridge.services.auth_gateway import AuthGateway
from voicebridge.services.simulator import ResponseSimulator
from voicebridge.utils.audio_utils import prepare_upload
from voicebridge.utils.pagination import (
    HISTORY_PAGE_SIZE,
    HISTORY_PATH,
    LESSONS_PAGE_SIZE,
    LESSONS_PATH,
    filter_lessons,
    lesson_filter_params,
    paginate,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

JSON_CONTENT_TYPE = "application/json"
GENERIC_ERROR_MESSAGE = "An error occurred"
INVALID_RESPONSE_MESSAGE = "Invalid response from server"


class DataBackend(ABC):
    """Contract shared by the remote and local backends."""

    mode: str = ""

    @abstractmethod
    async def login(self, username: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def register(self, username: str, email: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def get_profile(self) -> User:
        pass

    @abstractmethod
    async def update_profile(self, fields: Mapping[str, Any]) -> User:
        pass

    @abstractmethod
    async def submit_voice(
        self,
        audio: bytes,
        language: str,
        category: Optional[str] = None,
        filename: str = "recording"
    ) -> VoiceQueryResult:
        pass

    @abstractmethod
    async def text_query(self, text: str, language: str, category: Optional[str] = None) -> TextQueryResult:
        pass

    @abstractmethod
    async def list_lessons(
        self,
        language: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1
    ) -> PagedResult:
        pass

    @abstractmethod
    async def list_history(self, page: int = 1) -> PagedResult:
        pass

    async def aclose(self) -> None:
        """Release any resources held by the backend."""
        pass


def extract_error_message(payload: Any, default: str = GENERIC_ERROR_MESSAGE) -> str:
    """Human-readable message from an error payload, or a generic one."""
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return default


def merge_headers(
    auth_headers: Mapping[str, str],
    extra_headers: Optional[Mapping[str, str]] = None,
    json_body: bool = True
) -> Dict[str, str]:
    """
    Build request headers.

    Starts from the JSON content type (left out for multipart bodies), adds
    caller headers, then the auth headers. A caller header never replaces a
    header the auth gateway set.
    """
    merged: Dict[str, str] = {"Content-Type": JSON_CONTENT_TYPE} if json_body else {}
    auth_keys = {key.lower() for key in auth_headers}

    for key, value in (extra_headers or {}).items():
        if key.lower() in auth_keys:
            continue
        if key.lower() == "content-type":
            merged.pop("Content-Type", None)
        merged[key] = value

    merged.update(auth_headers)
    return merged


def _parse(model: Type[M], payload: Any) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Unexpected {model.__name__} payload from server: {e}")
        raise ServerError(INVALID_RESPONSE_MESSAGE)


class RemoteBackend(DataBackend):
    """Backend that calls the HTTP API."""

    mode = "remote"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        auth: AuthGateway,
        extra_headers: Optional[Mapping[str, str]] = None
    ):
        """
        Initialize the remote backend.

        Args:
            http_client: Client bound to the backend's base URL
            auth: Gateway providing auth headers and token refresh
            extra_headers: Caller headers sent with every request
        """
        self.http_client = http_client
        self.auth = auth
        self.extra_headers = dict(extra_headers or {})

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        _retried: bool = False
    ) -> Any:
        """
        Perform one API call and return the decoded JSON payload.

        On a 401 the access token is refreshed and the call is retried once.
        If the refresh fails the session is ended.

        Raises:
            NetworkError: If the backend cannot be reached
            AuthError: If the token could not be refreshed after a 401
            ServerError: On any other non-2xx status or an undecodable body
        """
        caller_headers = {**self.extra_headers, **(headers or {})}
        merged = merge_headers(self.auth.headers(), caller_headers, json_body=files is None)

        try:
            response = await self.http_client.request(
                method,
                path,
                json=json,
                params=params,
                data=data,
                files=files,
                headers=merged
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling {method} {path}: {e}")
            raise RequestTimeoutError()
        except httpx.HTTPError as e:
            logger.error(f"API Error calling {method} {path}: {e}")
            raise NetworkError()

        if response.status_code == 401 and not _retried:
            logger.info(f"{method} {path} returned 401, refreshing access token")
            if await self.auth.refresh():
                return await self.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    data=data,
                    files=files,
                    headers=headers,
                    _retried=True
                )
            self.auth.force_logout()
            raise AuthError()

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            logger.warning(f"{method} {path} failed with status {response.status_code}")
            # Already retried once; a second 401 is reported as-is
            default = AuthError.default_message if response.status_code == 401 else GENERIC_ERROR_MESSAGE
            raise ServerError(extract_error_message(payload, default), status_code=response.status_code)

        if payload is None:
            logger.error(f"{method} {path} returned a body that is not JSON")
            raise ServerError(INVALID_RESPONSE_MESSAGE, status_code=response.status_code)

        return payload

    async def login(self, username: str, password: str) -> AuthResult:
        payload = await self.request("POST", "/api/auth/login/", json={"username": username, "password": password})
        return _parse(AuthResult, payload)

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        payload = await self.request(
            "POST",
            "/api/auth/register/",
            json={"username": username, "email": email, "password": password}
        )
        return _parse(AuthResult, payload)

    async def get_profile(self) -> User:
        return _parse(User, await self.request("GET", "/api/user/profile/"))

    async def update_profile(self, fields: Mapping[str, Any]) -> User:
        return _parse(User, await self.request("PUT", "/api/user/profile/", json=dict(fields)))

    async def submit_voice(
        self,
        audio: bytes,
        language: str,
        category: Optional[str] = None,
        filename: str = "recording"
    ) -> VoiceQueryResult:
        form = {"language": language}
        if category:
            form["category"] = category

        payload = await self.request(
            "POST",
            "/api/assistant/voice-upload",
            data=form,
            files={"file": prepare_upload(audio, filename)}
        )
        return _parse(VoiceQueryResult, payload)

    async def text_query(self, text: str, language: str, category: Optional[str] = None) -> TextQueryResult:
        body = {"text": text, "language": language}
        if category:
            body["category"] = category

        payload = await self.request("POST", "/api/assistant/query", json=body)
        return _parse(TextQueryResult, payload)

    async def list_lessons(
        self,
        language: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1
    ) -> PagedResult:
        params = lesson_filter_params(language, category, search)
        params["page"] = str(page)
        return _parse(PagedResult[Lesson], await self.request("GET", LESSONS_PATH, params=params))

    async def list_history(self, page: int = 1) -> PagedResult:
        payload = await self.request("GET", HISTORY_PATH, params={"page": str(page)})
        return _parse(PagedResult[QueryRecord], payload)

    async def aclose(self) -> None:
        await self.http_client.aclose()


class LocalBackend(DataBackend):
    """Backend that serves the offline datasets from local storage."""

    mode = "local"

    def __init__(self, store: LocalDataStore, simulator: ResponseSimulator):
        self.store = store
        self.simulator = simulator

    def _stored_user(self) -> Dict[str, Any]:
        stored = self.store.get_dict(STORAGE_KEYS["USER_PROFILE"])
        if stored is not None:
            try:
                return User.model_validate(stored).model_dump()
            except ValidationError:
                logger.warning("Stored user profile is corrupt, using the default profile")
        return User.model_validate(MOCK_USER).model_dump()

    async def login(self, username: str, password: str) -> AuthResult:
        # Any credentials are accepted offline
        await self.simulator.delay("login")
        user = {**self._stored_user(), "username": username}
        return AuthResult(access=MOCK_ACCESS_TOKEN, refresh=MOCK_REFRESH_TOKEN, user=user)

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        await self.simulator.delay("register")
        user = User.model_validate({**MOCK_USER, "username": username, "email": email})
        self.store.set(STORAGE_KEYS["USER_PROFILE"], user.model_dump())
        return AuthResult(access=MOCK_ACCESS_TOKEN, refresh=MOCK_REFRESH_TOKEN, user=user)

    async def get_profile(self) -> User:
        await self.simulator.delay("get_profile")
        return User.model_validate(self._stored_user())

    async def update_profile(self, fields: Mapping[str, Any]) -> User:
        """Merge ``fields`` into the stored profile; profile fields may be nested or flat."""
        await self.simulator.delay("update_profile")
        merged = self._stored_user()
        profile = dict(merged.get("profile") or {})

        for key, value in fields.items():
            if key == "profile" and isinstance(value, Mapping):
                profile.update(value)
            elif key == "phone":
                profile["phone_number"] = value
            elif key in PROFILE_FIELDS:
                profile[key] = value
            else:
                merged[key] = value
        merged["profile"] = profile

        try:
            user = User.model_validate(merged)
        except ValidationError as e:
            fields_in_error = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ServerError(f"Invalid profile data: {fields_in_error}", status_code=400)

        self.store.set(STORAGE_KEYS["USER_PROFILE"], user.model_dump())
        return user

    async def submit_voice(
        self,
        audio: bytes,
        language: str,
        category: Optional[str] = None,
        filename: str = "recording"
    ) -> VoiceQueryResult:
        # Same payload check as an upload, though the audio itself is never used offline
        prepare_upload(audio, filename)
        return await self.simulator.simulate_voice(language, category)

    async def text_query(self, text: str, language: str, category: Optional[str] = None) -> TextQueryResult:
        return await self.simulator.simulate_text(text, language, category)

    async def list_lessons(
        self,
        language: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1
    ) -> PagedResult:
        await self.simulator.delay("list_lessons")
        stored = self.store.get(STORAGE_KEYS["LESSONS"])
        lessons = _valid_items(Lesson, stored if isinstance(stored, list) else MOCK_LESSONS)
        filtered = filter_lessons(lessons, language, category, search)

        return paginate(
            filtered,
            page,
            LESSONS_PAGE_SIZE,
            LESSONS_PATH,
            lesson_filter_params(language, category, search)
        )

    async def list_history(self, page: int = 1) -> PagedResult:
        await self.simulator.delay("list_history")
        history = _valid_items(QueryRecord, self.store.get_list(STORAGE_KEYS["QUERY_HISTORY"]))
        return paginate(history, page, HISTORY_PAGE_SIZE, HISTORY_PATH)


def _valid_items(model: Type[M], items: Any) -> list:
    """Parse stored entries, dropping the ones that no longer validate."""
    parsed = []
    for item in items or []:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError:
            logger.warning(f"Skipping corrupt {model.__name__} entry in local storage")
    return parsed
