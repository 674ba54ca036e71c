"""Identity operations and ownership of the client-visible session marker."""
import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from core.errors import ApiError, SessionExpiredError
from core.state import AppState
from schemas.user import User, UserUpdate
from services.api_client import ApiClient

logger = logging.getLogger(__name__)


class AuthGateway:
    """
    Wraps ApiClient for login, registration, identity reads and logout.

    The session marker it maintains is a local liveness hint, not a capability:
    protected calls still depend on the session cookie, and a session that dies
    between a marker check and a request is recovered (or not) by ApiClient's
    401 handling.
    """

    def __init__(self, client: ApiClient, state: AppState) -> None:
        self.client = client
        self.state = state
        client.on_session_expired = self._handle_session_expired

    def is_authenticated(self) -> bool:
        """Check the local session marker."""
        return self.state.is_authenticated()

    async def login(self, email: str, password: str) -> User:
        """
        Log in and set the session marker.

        The marker is only set once the response body is a valid user.

        Raises:
            ApiError: Propagated untouched; callers show `error.message`. A 2xx
                response whose body is not a user is reported the same way.
        """
        result = await self.client.send(
            "/auth/login", method="POST", body={"email": email, "password": password},
        )
        data = result.unwrap()
        try:
            user = User.model_validate(data)
        except ValidationError as e:
            logger.warning("login_response_invalid", extra={"status": result.status})
            raise ApiError(
                "Unexpected response from server", status=result.status, data=data,
            ) from e
        await self.state.mark_authenticated()
        logger.info("login_succeeded")
        return user

    async def register(self, name: str, email: str, password: str) -> User:
        """Create an account. Does not log in; the UI follows up with `login`."""
        data = await self.client.request(
            "/auth/register",
            method="POST",
            body={"fullName": name, "email": email, "password": password},
        )
        return User.model_validate(data)

    async def fetch_current_user(self, signal: asyncio.Event | None = None) -> User:
        """Read the current identity. Doubles as the authorization probe."""
        data = await self.client.request("/auth/me", signal=signal)
        return User.model_validate(data)

    async def logout(self) -> None:
        """
        End the session.

        The remote call is best effort: its failure is logged and swallowed so
        a session can always be dropped locally, even with the server unreachable.
        """
        try:
            result = await self.client.send("/auth/logout", method="POST")
            if not result.ok:
                logger.info(
                    "logout_remote_failed",
                    extra={"status": result.status, "error": result.error.message},
                )
        finally:
            await self.state.clear_session()

    async def change_password(self, current_password: str, new_password: str) -> dict[str, Any]:
        """Change the current user's password."""
        return await self.client.request(
            "/auth/change-password",
            method="POST",
            body={"currentPassword": current_password, "newPassword": new_password},
        ) or {}

    async def update_me(self, update: UserUpdate) -> User:
        """Update the current user's profile fields."""
        data = await self.client.request("/auth/me", method="PATCH", body=update.to_payload())
        return User.model_validate(data)

    async def delete_me(self) -> None:
        """Delete the account and drop all locally persisted state."""
        await self.client.request("/auth/me", method="DELETE")
        await self.state.clear()
        logger.info("account_deleted")

    async def _handle_session_expired(self, error: SessionExpiredError) -> None:
        logger.info("session_marker_cleared", extra={"status": error.status})
        await self.state.clear_session()
