"""
Reconciliation of locally cached settings with the server copy.

Loading merges the authoritative remote fields over the local cache (remote
wins), writes the result back and broadcasts one SettingsChanged event so
header, sidebar and profile regions re-render without being wired together.

Editing goes through SettingsDraft: an edit-scoped copy that never reaches
shared state or the server until `commit()` succeeds.
"""
import asyncio
import logging
from types import TracebackType
from typing import Any

from pydantic import ValidationError

from core.errors import ApiError
from core.events import SettingsChanged
from core.state import AppState
from schemas.settings import AppSettings
from services.api_client import ApiClient
from services.user_settings import get_user_settings, update_user_settings

logger = logging.getLogger(__name__)


class PreferenceReconciler:
    """Loads, merges and saves settings for one AppState."""

    def __init__(self, client: ApiClient, state: AppState) -> None:
        self.client = client
        self.state = state

    @property
    def settings(self) -> AppSettings:
        """Current shared settings."""
        return self.state.settings

    async def load(self, signal: asyncio.Event | None = None) -> AppSettings:
        """
        Fetch remote settings and merge them over the cache.

        A failed fetch is not an error for the caller: the cache is left
        untouched and the last cached settings are returned.
        """
        try:
            remote = await get_user_settings(self.client, signal=signal)
        except (ApiError, ValidationError) as e:
            logger.warning("settings_fetch_failed", extra={"error": str(e)})
            return self.state.settings

        async with self.state.settings_lock:
            merged = self.state.settings.merged_with(remote)
            changed = await self.state.set_settings(merged)
        self.state.events.publish(SettingsChanged(settings=merged, changed_fields=changed))
        return merged

    async def save(self, settings: AppSettings) -> AppSettings:
        """
        Persist settings: remote subset to the server, everything to shared state.

        Nothing is committed locally unless the server write succeeds.

        Raises:
            ApiError: When the server write fails.
        """
        await update_user_settings(self.client, settings.remote_payload())
        async with self.state.settings_lock:
            changed = await self.state.set_settings(settings)
        self.state.events.publish(SettingsChanged(settings=settings, changed_fields=changed))
        logger.info("settings_saved", extra={"changed_fields": sorted(changed)})
        return settings

    def edit(self) -> "SettingsDraft":
        """Start an editing session on a copy of the shared settings."""
        return SettingsDraft(self)


class SettingsDraft:
    """
    Edit-scoped copy of the shared settings.

    Any change broadcast for the shared settings, whether from this draft's own
    commit or from elsewhere, resets the draft to the new shared value, so an
    unsaved edit never outlives a reload.
    """

    def __init__(self, reconciler: PreferenceReconciler) -> None:
        self._reconciler = reconciler
        self.values: AppSettings = reconciler.settings
        self.error: str | None = None
        self._unsubscribe = reconciler.state.events.subscribe(
            SettingsChanged, self._on_shared_changed,
        )

    def __enter__(self) -> "SettingsDraft":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def shared(self) -> AppSettings:
        """The committed value this draft is compared against."""
        return self._reconciler.settings

    def update(self, **changes: Any) -> AppSettings:
        """
        Change draft fields by name.

        Raises:
            ValidationError: If a value is not allowed for its field.
        """
        self.values = AppSettings.model_validate({**self.values.model_dump(), **changes})
        return self.values

    def is_dirty(self, field_name: str) -> bool:
        """Whether one field differs from the shared value (drives unsaved-change markers)."""
        return getattr(self.values, field_name) != getattr(self.shared, field_name)

    def dirty_fields(self) -> frozenset[str]:
        """All fields that differ from the shared value."""
        return self.values.changed_fields(self.shared)

    @property
    def has_changes(self) -> bool:
        """Whether anything would be saved by `commit`."""
        return bool(self.dirty_fields())

    def reset(self) -> None:
        """Discard edits."""
        self.values = self.shared
        self.error = None

    async def commit(self) -> bool:
        """
        Save the draft.

        Returns False and sets `error` when the save fails; the draft keeps its
        values so the user can retry.
        """
        self.error = None
        try:
            await self._reconciler.save(self.values)
        except ApiError as e:
            logger.warning("settings_save_failed", extra={"status": e.status})
            self.error = e.message
            return False
        return True

    def close(self) -> None:
        """Stop following shared settings."""
        self._unsubscribe()

    def _on_shared_changed(self, event: SettingsChanged) -> None:
        self.values = event.settings
