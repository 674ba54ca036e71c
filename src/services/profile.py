"""Reconciliation of the cached user profile with /auth/me."""
import asyncio
import logging

from pydantic import ValidationError

from core.errors import ApiError
from core.events import UserChanged
from core.state import AppState
from schemas.user import CachedProfile, UserUpdate
from services.auth import AuthGateway

logger = logging.getLogger(__name__)


class ProfileReconciler:
    """Keeps the cached profile used by header, sidebar and profile form current."""

    def __init__(self, auth: AuthGateway, state: AppState) -> None:
        self.auth = auth
        self.state = state

    async def load(self, signal: asyncio.Event | None = None) -> CachedProfile:
        """Refresh the cache from the server; falls back to the cached profile on failure."""
        try:
            user = await self.auth.fetch_current_user(signal=signal)
        except (ApiError, ValidationError) as e:
            logger.warning("profile_fetch_failed", extra={"error": str(e)})
            return self.state.profile

        profile = self.state.profile.merged_with(user)
        await self.state.set_profile(profile)
        self.state.events.publish(UserChanged(user=profile))
        return profile

    async def save(self, profile: CachedProfile) -> CachedProfile:
        """
        Persist profile changes, then update the cache and notify subscribers.

        Raises:
            ApiError: When the server rejects the update; the cache is untouched.
        """
        await self.auth.update_me(
            UserUpdate(
                full_name=profile.name,
                email=profile.email,
                preferred_currency=profile.currency,
            ),
        )
        await self.state.set_profile(profile)
        self.state.events.publish(UserChanged(user=profile))
        return profile
