from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from bar_ledger.config import Config
from bar_ledger.common.d_logger import Logs
from .models import Base

logger = Logs().get_logger("db")


class DbUtil:
    def __init__(self, db_url: str = None):
        self.db_url = db_url or Config.DB_URL
        engine_kwargs = {'echo': Config.DB_ECHO, 'future': True}
        if self.db_url.startswith('sqlite') and ':memory:' in self.db_url:
            # every session must see the same in-memory database
            engine_kwargs['poolclass'] = StaticPool
            engine_kwargs['connect_args'] = {'check_same_thread': False}
        self.engine = create_async_engine(self.db_url, **engine_kwargs)
        self.async_session = sessionmaker(
            class_=AsyncSession,
            expire_on_commit=False,
            bind=self.engine
        )

    async def create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self):
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self):
        """Provides a session context manager that automatically handles commit/rollback"""
        session = self.async_session()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error: {e}")
            raise
        finally:
            await session.close()
