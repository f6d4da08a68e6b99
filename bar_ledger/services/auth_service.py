from typing import Optional
from werkzeug.security import check_password_hash
from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.db.remote_store import RemoteStore
from bar_ledger.model.entity_store import EntityStore
from bar_ledger.model.records import User

logger = Logs().get_logger("main")


class Authenticator:
    def __init__(self, store: EntityStore, remote: RemoteStore):
        self.store = store
        self.remote = remote

    async def refresh_users(self) -> bool:
        """Pull the user table so a login sees the latest credentials"""
        try:
            users = await self.remote.table(Config.EntityKind.USER).list()
        except Exception as e:
            logger.error(f"Refreshing users failed, using local copy: {e}")
            return False
        # remote rows win per user, users created locally and not yet synced stay
        for user in users:
            self.store.put(Config.EntityKind.USER, user)
        return True

    async def authenticate(self, username: str, secret: str) -> Optional[User]:
        """Authenticate a user by username and password"""
        await self.refresh_users()
        user = self.store.find_user_by_username(username)
        if user and check_password_hash(user.credential, secret):
            return user
        logger.info(f"Login failed for {username}")
        return None
