"""
Shared client state: session marker, cached profile and cached settings.

One AppState instance is passed to every service that needs it instead of
living in module globals, so tests (and multiple logical clients) get isolated
state. Reads are synchronous against an in-memory mirror; writes go through to
the backing store so the state survives restarts when the store is persistent.
"""
import asyncio
import logging

from pydantic import ValidationError

from core.config import Settings, get_settings
from core.events import EventBus
from core.store import KeyValueStore, MemoryStore, RedisStore
from schemas.settings import AppSettings
from schemas.user import CachedProfile

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"
PROFILE_KEY = "userPreferences"
SETTINGS_KEY = "appSettings"

SESSION_MARKER = "1"


class AppState:
    """Container for process-wide client state with explicit accessors."""

    def __init__(self, store: KeyValueStore | None = None, events: EventBus | None = None) -> None:
        self.store = store if store is not None else MemoryStore()
        self.events = events if events is not None else EventBus()
        # Serializes read-merge-write cycles on the settings cache; store writes can suspend
        self.settings_lock = asyncio.Lock()
        self._authenticated = False
        self._profile = CachedProfile()
        self._settings = AppSettings()
        self._has_settings = False

    async def load(self) -> None:
        """Hydrate the in-memory mirror from the backing store."""
        self._authenticated = await self.store.get(SESSION_KEY) == SESSION_MARKER
        self._profile = CachedProfile.from_cache(await self.store.get(PROFILE_KEY))

        raw_settings = await self.store.get(SETTINGS_KEY)
        self._has_settings = raw_settings is not None
        if raw_settings is None:
            self._settings = AppSettings()
            return
        try:
            self._settings = AppSettings.model_validate(raw_settings)
        except ValidationError:
            logger.warning("cached_settings_invalid", extra={"key": SETTINGS_KEY})
            self._settings = AppSettings()

    # Session marker

    def is_authenticated(self) -> bool:
        """Local liveness hint only; the server remains the source of truth."""
        return self._authenticated

    async def mark_authenticated(self) -> None:
        """Set the session marker."""
        self._authenticated = True
        await self.store.set(SESSION_KEY, SESSION_MARKER)

    async def clear_session(self) -> None:
        """Clear the session marker."""
        self._authenticated = False
        await self.store.delete(SESSION_KEY)

    # Cached profile

    @property
    def profile(self) -> CachedProfile:
        """Last known profile (defaults when nothing was cached)."""
        return self._profile

    async def set_profile(self, profile: CachedProfile) -> None:
        """Replace the cached profile."""
        self._profile = profile
        await self.store.set(PROFILE_KEY, profile.to_cache())

    # Cached settings

    @property
    def settings(self) -> AppSettings:
        """Shared settings (defaults when nothing was cached)."""
        return self._settings

    @property
    def has_cached_settings(self) -> bool:
        """Whether settings were ever fetched or written locally."""
        return self._has_settings

    async def set_settings(self, settings: AppSettings) -> frozenset[str]:
        """Replace shared settings and the cache; returns the names of changed fields."""
        changed = settings.changed_fields(self._settings)
        self._settings = settings
        self._has_settings = True
        await self.store.set(SETTINGS_KEY, settings.to_cache())
        return changed

    async def clear(self) -> None:
        """Drop every locally persisted entry (account deletion)."""
        self._authenticated = False
        self._profile = CachedProfile()
        self._settings = AppSettings()
        self._has_settings = False
        await self.store.delete(SESSION_KEY, PROFILE_KEY, SETTINGS_KEY)

    async def close(self) -> None:
        """Release the backing store's connections."""
        await self.store.close()


async def create_state(settings: Settings | None = None) -> AppState:
    """
    Build the application's state over the configured store and hydrate it.

    Uses Redis when enabled so the session marker and caches survive restarts;
    otherwise state lives in memory for the life of the process. A Redis store
    that cannot connect degrades to "nothing cached".
    """
    settings = settings or get_settings()
    store: KeyValueStore
    if settings.redis_enabled:
        store = RedisStore(settings.redis_url, prefix=settings.storage_prefix)
        await store.connect()
    else:
        store = MemoryStore()

    state = AppState(store)
    await state.load()
    logger.info(
        "state_loaded",
        extra={"redis_enabled": settings.redis_enabled, "authenticated": state.is_authenticated()},
    )
    return state
