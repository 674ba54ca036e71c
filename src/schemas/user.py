"""Schemas for the authenticated user and its locally cached profile."""
from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CURRENCY = "INR"


class User(BaseModel):
    """Identity payload returned by the /auth endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    email: str
    full_name: str | None = Field(default=None, alias="fullName")
    preferred_currency: str | None = Field(default=None, alias="preferredCurrency")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Backends may send numeric ids."""
        return str(v)


class UserUpdate(BaseModel):
    """Schema for updating the current user's profile."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str | None = Field(default=None, alias="fullName")
    email: str | None = None
    preferred_currency: str | None = Field(default=None, alias="preferredCurrency")

    def to_payload(self) -> dict[str, Any]:
        """Wire payload with only the fields that were provided."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class CachedProfile:
    """
    Lightweight profile kept in local storage.

    Used to pre-fill profile forms and as the fallback for header/sidebar user
    lines when /auth/me cannot be reached. Stored as flat JSON under
    `userPreferences` with keys `name`, `email`, `currency`.
    """

    name: str = ""
    email: str = ""
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def from_cache(cls, raw: Any) -> "CachedProfile":
        """Build from a cached JSON object, ignoring unknown or malformed entries."""
        if not isinstance(raw, dict):
            return cls()
        return cls(
            name=str(raw.get("name") or ""),
            email=str(raw.get("email") or ""),
            currency=str(raw.get("currency") or DEFAULT_CURRENCY),
        )

    def to_cache(self) -> dict[str, str]:
        """JSON object for local storage."""
        return asdict(self)

    def merged_with(self, user: User) -> "CachedProfile":
        """Server values win; cached values fill fields the server left empty."""
        return CachedProfile(
            name=user.full_name or self.name,
            email=user.email or self.email,
            currency=user.preferred_currency or self.currency or DEFAULT_CURRENCY,
        )
