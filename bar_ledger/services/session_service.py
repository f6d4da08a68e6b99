from enum import Enum
from typing import Optional

from bar_ledger.common.d_logger import Logs
from bar_ledger.ds_exceptions import ScopeError, ValidationError
from bar_ledger.model.records import Event, User

logger = Logs().get_logger("main")


class SessionState(Enum):
    UNAUTHENTICATED = 1
    AUTHENTICATED = 2
    EVENT_SELECTED = 3


class Session:
    """Current user and current event of one running session.

    Passed explicitly to everything that needs a scope, there is no global
    current event.
    """

    def __init__(self):
        self.current_user: Optional[User] = None
        self.current_event_id: Optional[str] = None

    @property
    def state(self) -> SessionState:
        if self.current_user is None:
            return SessionState.UNAUTHENTICATED
        if self.current_event_id is None:
            return SessionState.AUTHENTICATED
        return SessionState.EVENT_SELECTED

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.is_admin

    @property
    def has_event(self) -> bool:
        return self.state == SessionState.EVENT_SELECTED

    def login(self, user: User):
        # a new login never inherits the previous user's event
        self.current_event_id = None
        self.current_user = user
        logger.info(f"user {user.username} logged in")

    def logout(self):
        if self.current_user is not None:
            logger.info(f"user {self.current_user.username} logged out")
        self.current_user = None
        self.current_event_id = None

    def select_event(self, event: Event):
        if self.current_user is None:
            raise ValidationError("log in before selecting an event")
        self.current_event_id = event.event_id
        logger.info(f"event {event.event_id} ({event.name}) selected")

    def exit_event(self):
        self.current_event_id = None

    def refresh_user(self, user: User):
        """Swap in an edited record of the logged-in user"""
        if self.current_user is not None and self.current_user.user_id == user.user_id:
            self.current_user = user

    def require_event(self) -> str:
        if not self.has_event:
            raise ScopeError("no event selected")
        return self.current_event_id
