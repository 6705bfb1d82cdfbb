import logging
from enum import Enum
from typing import Callable, Optional

from models.user import Profile

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"


AuthListener = Callable[[AuthEvent, Optional[Profile]], None]


class SessionProvider:
    """
    Holds who is signed in and notifies listeners on sign-in / sign-out.
    One provider per client session (one per request on the HTTP surface).
    """

    def __init__(self, actor: Optional[Profile] = None):
        self._actor = actor
        self._listeners: list[AuthListener] = []

    def get_current_actor(self) -> Optional[Profile]:
        return self._actor

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, actor: Profile) -> None:
        self._actor = actor
        self._emit(AuthEvent.SIGNED_IN, actor)

    def sign_out(self) -> None:
        self._actor = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    def update_actor(self, actor: Profile) -> None:
        self._actor = actor
        self._emit(AuthEvent.USER_UPDATED, actor)

    def _emit(self, event: AuthEvent, actor: Optional[Profile]) -> None:
        logger.debug("AUTH_EVENT event=%s actor=%s", event.value, actor.id if actor else None)
        for listener in list(self._listeners):
            listener(event, actor)
