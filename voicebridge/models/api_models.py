"""Pydantic models for the data exchanged with callers and the remote backend."""

from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

T = TypeVar("T")

DeviceType = Literal["smartphone", "feature-phone"]
Language = Literal["en", "yo", "ha", "ig"]

# Profile fields the backend may send flat on the user object
PROFILE_FIELDS = ("device_type", "language", "phone_number")


class AuthTokens(BaseModel):
    """Access/refresh token pair. Both are always present together."""

    access: str = Field(..., min_length=1)
    refresh: str = Field(..., min_length=1)


class UserProfile(BaseModel):
    """Per-user preferences; exactly one device type and one language."""

    device_type: DeviceType = "smartphone"
    language: Language = "en"
    phone_number: Optional[str] = None


class User(BaseModel):
    """Authenticated user as returned by the profile endpoints."""

    id: str
    username: str
    email: str
    profile: UserProfile = Field(default_factory=UserProfile)

    @model_validator(mode="before")
    @classmethod
    def lift_flat_profile_fields(cls, data: Any) -> Any:
        """Accept profile fields sent flat on the user object (``phone`` included)."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        profile = dict(data.get("profile") or {})
        if "phone" in data and "phone_number" not in data:
            data["phone_number"] = data.pop("phone")
        for name in PROFILE_FIELDS:
            if name in data:
                value = data.pop(name)
                if value is not None:
                    profile.setdefault(name, value)
        data["profile"] = profile
        return data

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Backends use integer primary keys; keep ids as strings."""
        return str(v) if v is not None else v


class AuthResult(BaseModel):
    """Payload returned by login and register."""

    access: str = Field(..., min_length=1)
    refresh: str = Field(..., min_length=1)
    user: User

    @property
    def tokens(self) -> AuthTokens:
        return AuthTokens(access=self.access, refresh=self.refresh)


class QueryRecord(BaseModel):
    """One entry of the query-history log."""

    id: str
    query: str
    response: str
    language: str
    category: str
    timestamp: str
    audio_url: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v


class Lesson(BaseModel):
    """Topic lesson; read-only from this layer's perspective."""

    id: str
    title: str
    body: str
    language: str
    category: str
    created_at: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v


class VoiceQueryResult(BaseModel):
    """Recognized query and assistant reply for an uploaded recording."""

    query: str
    response: str
    audio_url: Optional[str] = None
    uploaded_input_audio_url: Optional[str] = None


class TextQueryResult(BaseModel):
    """Assistant reply for a typed query."""

    query: str
    response: str
    audio_url: Optional[str] = None


class PagedResult(BaseModel, Generic[T]):
    """Bounded slice of an ordered collection plus count and locators."""

    results: List[T] = Field(default_factory=list)
    count: int = Field(0, ge=0)
    next: Optional[str] = None
    previous: Optional[str] = None


class ApiResponse(BaseModel, Generic[T]):
    """Normalized response returned by every dispatcher operation."""

    data: Optional[T] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def check_error_message(self):
        if self.error is not None and not self.error.strip():
            raise ValueError("error message must not be empty")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, message: str) -> "ApiResponse[T]":
        return cls(error=message)
