"""
Outbox for remote synchronization.

Local state is the source of truth for the running session. Each optimistic
mutation hands the matching remote call to the outbox, which starts it as an
asyncio task when a loop is running (fire-and-forget) or queues it until the
next ``drain()`` otherwise. Calls reach the remote store one at a time in
submission order, so a child row never races ahead of its parent. Failures are
logged and kept for a user-triggered ``retry_failed()``; nothing here ever
touches local state.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Set

from bar_ledger.common.d_logger import Logs

logger = Logs().get_logger("db")


@dataclass
class OutboxEntry:
    description: str
    call: Callable[[], Awaitable]
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


class Outbox:
    def __init__(self):
        self._queued: List[OutboxEntry] = []
        self._running: Set[asyncio.Task] = set()
        self._lock: Optional[asyncio.Lock] = None
        self.failed: List[OutboxEntry] = []
        self.sent_count = 0

    def submit(self, description: str, call: Callable[[], Awaitable]) -> OutboxEntry:
        """Schedule a remote call without waiting for it"""
        entry = OutboxEntry(description, call)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"no running loop, queued: {description}")
            self._queued.append(entry)
            return entry

        task = loop.create_task(self._send(entry))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return entry

    async def _send(self, entry: OutboxEntry) -> bool:
        # created on first use so it belongs to the loop that sends
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            entry.attempts += 1
            try:
                await entry.call()
            except Exception as e:
                entry.last_error = str(e)
                logger.error(f"remote sync failed ({entry.description}), "
                             f"attempt {entry.attempts}: {e}")
                self.failed.append(entry)
                return False
        self.sent_count += 1
        logger.debug(f"remote sync done: {entry.description}")
        return True

    async def drain(self):
        """Send everything queued and wait for the calls already in flight"""
        while self._queued or self._running:
            queued, self._queued = self._queued, []
            for entry in queued:
                await self._send(entry)
            if self._running:
                await asyncio.gather(*list(self._running))

    async def retry_failed(self) -> int:
        """Resend failed calls in their original order, returns how many still fail"""
        await self.drain()
        failed, self.failed = self.failed, []
        for entry in failed:
            await self._send(entry)
        return len(self.failed)

    def discard_failed(self) -> List[OutboxEntry]:
        """Give up on the failed calls, returns what was dropped"""
        dropped, self.failed = self.failed, []
        for entry in dropped:
            logger.warning(f"remote sync abandoned after {entry.attempts} attempt(s): "
                           f"{entry.description}")
        return dropped

    @property
    def pending_count(self) -> int:
        return len(self._queued) + len(self._running)
