"""
Route authorization guard.

One SessionGuard instance lives for one navigation into the protected part of
the application. It decides exactly once whether the protected content may
render:

    UNCHECKED -> UNAUTHORIZED                  (no session marker, no network call)
    UNCHECKED -> CHECKING -> AUTHORIZED        (identity probe succeeded)
    UNCHECKED -> CHECKING -> UNAUTHORIZED      (probe failed; marker cleared)

AUTHORIZED and UNAUTHORIZED are terminal. There is no periodic re-validation:
a later request's own 401 handling takes care of long-lived sessions.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import ValidationError

from core.errors import ApiError, RequestCancelledError
from services.auth import AuthGateway

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


class GuardState(Enum):
    """Authorization state of one navigation."""

    UNCHECKED = "unchecked"
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


@dataclass
class RouteDecision:
    """What the route boundary should do right now."""

    action: Literal["wait", "redirect", "render"]
    location: str | None = None
    state: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Liveness:
    """Captured at mount; flipped by unmount so late results are ignored."""

    mounted: bool = True
    signal: asyncio.Event = field(default_factory=asyncio.Event)


class SessionGuard:
    """Per-navigation authorization state machine."""

    def __init__(
        self,
        auth: AuthGateway,
        destination: str,
        login_path: str = LOGIN_PATH,
    ) -> None:
        self.auth = auth
        self.destination = destination
        self.login_path = login_path
        self.state = GuardState.UNCHECKED
        self.history: list[GuardState] = [GuardState.UNCHECKED]
        self._liveness: _Liveness | None = None

    @property
    def is_terminal(self) -> bool:
        """Whether the guard has reached its final decision."""
        return self.state in (GuardState.AUTHORIZED, GuardState.UNAUTHORIZED)

    async def mount(self) -> GuardState:
        """
        Run the authorization check. Only the first call, made before any
        unmount(), does any work.

        Any API failure during the probe, network blip or genuine expiry alike,
        fails closed: the marker is cleared via logout and the guard ends
        UNAUTHORIZED.
        """
        if self._liveness is not None:
            return self.state
        liveness = _Liveness()
        self._liveness = liveness

        if not self.auth.is_authenticated():
            self._transition(GuardState.UNAUTHORIZED)
            return self.state

        self._transition(GuardState.CHECKING)
        try:
            await self.auth.fetch_current_user(signal=liveness.signal)
        except RequestCancelledError:
            return self.state
        except (ApiError, ValidationError) as e:
            if not liveness.mounted:
                return self.state
            logger.debug(
                "session_probe_failed",
                extra={"destination": self.destination, "status": getattr(e, "status", None)},
            )
            await self.auth.logout()
            if liveness.mounted:
                self._transition(GuardState.UNAUTHORIZED)
            return self.state

        if liveness.mounted:
            self._transition(GuardState.AUTHORIZED)
        return self.state

    def unmount(self) -> None:
        """Tear down; any check still in flight will not apply its result."""
        if self._liveness is None:
            # Torn down before mounting: a later mount() does nothing
            self._liveness = _Liveness()
        self._liveness.mounted = False
        self._liveness.signal.set()

    def render(self) -> RouteDecision:
        """Decide what to show for the current state."""
        if self.state == GuardState.AUTHORIZED:
            return RouteDecision(action="render")
        if self.state == GuardState.UNAUTHORIZED:
            return RouteDecision(
                action="redirect",
                location=self.login_path,
                state={"from": self.destination},
            )
        # Render nothing while unchecked or checking to avoid a flash of protected content
        return RouteDecision(action="wait")

    def _transition(self, new_state: GuardState) -> None:
        self.state = new_state
        self.history.append(new_state)


def post_login_destination(state: dict[str, Any] | None, default: str = "/") -> str:
    """Where the login flow should send the user after a successful login."""
    if not state:
        return default
    destination = state.get("from")
    # Only same-app paths; never bounce back to the login page itself
    if not isinstance(destination, str) or not destination.startswith("/") or destination.startswith("//"):
        return default
    if destination == LOGIN_PATH:
        return default
    return destination
