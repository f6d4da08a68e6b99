from typing import List, Optional
from bar_ledger.common.d_logger import Logs
from bar_ledger.config import Config
from bar_ledger.db.remote_store import RemoteStore
from bar_ledger.model.entity_store import EntityStore
from bar_ledger.model.records import User, new_user

logger = Logs().get_logger("db")

EntityKind = Config.EntityKind

LOAD_ORDER = (
    EntityKind.USER,
    EntityKind.EVENT,
    EntityKind.PRODUCT,
    EntityKind.SUPPLIER,
    EntityKind.SALE,
    EntityKind.EXPENSE,
    EntityKind.PURCHASE,
    EntityKind.INVENTORY_CHECK,
)


class DataService:
    """Fills the entity store from the remote store"""

    def __init__(self, store: EntityStore, remote: RemoteStore):
        self.store = store
        self.remote = remote
        self.failed_reads: List[EntityKind] = []
        self.seed_failed = False

    async def load_all(self) -> bool:
        """Read every table in order; a failed read leaves that collection as it was.

        An empty (but successful) user read seeds the default administrator
        once. Returns True when every read succeeded.
        """
        self.failed_reads = []
        for kind in LOAD_ORDER:
            try:
                records = await self.remote.table(kind).list()
            except Exception as e:
                logger.error(f"Loading {kind.value} failed: {e}")
                self.failed_reads.append(kind)
                continue
            self.store.replace_all(kind, records)
            if kind == EntityKind.USER and not records:
                await self.seed_default_admin()
        logger.info(f"Initial load done: {dict(self.store.counts())}")
        return not self.failed_reads

    async def seed_default_admin(self) -> Optional[User]:
        """Create the default administrator remotely; also the manual retry when that failed"""
        admin = new_user(Config.DEFAULT_ADMIN_NAME, Config.DEFAULT_ADMIN_USERNAME,
                         Config.DEFAULT_ADMIN_PASSWORD, role=Config.UserRole.ADMIN,
                         user_id=Config.DEFAULT_ADMIN_ID)
        try:
            await self.remote.table(EntityKind.USER).insert(admin)
        except Exception as e:
            logger.error(f"Seeding the default administrator failed: {e}")
            self.seed_failed = True
            return None
        self.seed_failed = False
        self.store.put(EntityKind.USER, admin)
        logger.info(f"Seeded default administrator {admin.username}")
        return admin

    async def resync(self) -> bool:
        """Reload every table, the remote copy wins over local state"""
        return await self.load_all()
