"""
Pydantic schemas for user settings.

Settings are split in two subsets that are always cached together in one JSON
object but only partially synced:

- remote-backed: theme, language, date format, budget alert threshold
  (round-trip through /user/settings in snake_case)
- local-only: notification toggles, fiscal year start, default transaction view
  (never sent to the backend)

The local cache uses camelCase keys (`dateFormat`, `budgetAlertThreshold`).
"""
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Theme = Literal["light", "dark"]
Language = Literal["en", "hi", "mr"]
DateFormat = Literal["DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD"]
FiscalYearStart = Literal["april", "january", "july", "october"]
TransactionView = Literal["all", "income", "expense", "month", "week"]

# Fields persisted by the backend; everything else on AppSettings stays local
REMOTE_FIELDS: tuple[str, ...] = ("theme", "language", "date_format", "budget_alert_threshold")


class AppSettings(BaseModel):
    """Complete settings object as held in shared state and the local cache."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    # Remote-backed
    theme: Theme = "light"
    language: Language = "en"
    date_format: DateFormat = "DD/MM/YYYY"
    budget_alert_threshold: int = Field(default=80, ge=0, le=100)

    # Local-only
    notifications: bool = True
    email_reports: bool = False
    auto_backup: bool = True
    fiscal_year_start: FiscalYearStart = "april"
    default_transaction_view: TransactionView = "all"

    def to_cache(self) -> dict[str, Any]:
        """camelCase JSON object for local storage."""
        return self.model_dump(by_alias=True)

    def remote_payload(self) -> dict[str, Any]:
        """snake_case body for PUT /user/settings (remote-backed subset only)."""
        return self.model_dump(include=set(REMOTE_FIELDS))

    def merged_with(self, remote: "RemoteSettings") -> "AppSettings":
        """Overlay the remote-backed fields the server returned; remote wins."""
        updates = remote.model_dump(include=set(REMOTE_FIELDS), exclude_none=True)
        return self.model_validate({**self.model_dump(), **updates})

    def changed_fields(self, other: "AppSettings") -> frozenset[str]:
        """Names of fields whose values differ from `other`."""
        mine = self.model_dump()
        theirs = other.model_dump()
        return frozenset(name for name, value in mine.items() if theirs.get(name) != value)


class RemoteSettings(BaseModel):
    """Response of GET/PUT /user/settings."""

    model_config = ConfigDict(extra="ignore")

    user_id: str | int | None = None
    theme: Theme | None = None
    language: Language | None = None
    date_format: DateFormat | None = None
    budget_alert_threshold: int | None = Field(default=None, ge=0, le=100)
    created_at: datetime | None = None
    updated_at: datetime | None = None
