"""In-process fan-out of status-change events.

Each subscriber gets its own asyncio.Queue and worker task, so a slow or
failing subscriber never delays the others or the request that caused
the event.  Within one subscriber events are handled in emission order.

Events are queued on the SQLAlchemy session with `publish_after_commit()`
and handed to the bus by an `after_commit` hook; a rollback discards them.

Lifecycle is driven by the FastAPI lifespan:

    await status_bus.start()
    ...
    await status_bus.stop()
"""

import asyncio
import logging
from typing import Awaitable, Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.events.status_events import StatusChangedEvent

logger = logging.getLogger("freightlink.events")

Subscriber = Callable[[StatusChangedEvent], Awaitable[None]]

_PENDING_KEY = "pending_status_events"


class StatusEventBus:

    def __init__(self) -> None:
        self._subscribers: list[tuple[str, Subscriber, asyncio.Queue]] = []
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def subscriber_names(self) -> list[str]:
        return [name for name, _, _ in self._subscribers]

    def subscribe(self, handler: Subscriber, name: str | None = None) -> None:
        name = name or getattr(handler, "name", None) or type(handler).__name__
        self._subscribers.append((name, handler, asyncio.Queue()))
        if self.running:
            self._start_worker(*self._subscribers[-1])

    def clear(self) -> None:
        """Drop all subscribers (the bus must be stopped)."""
        if self.running:
            raise RuntimeError("Cannot clear subscribers while the bus is running")
        self._subscribers.clear()

    def emit(self, evt: StatusChangedEvent) -> None:
        """Queue `evt` for every subscriber without waiting."""
        for _, _, queue in self._subscribers:
            queue.put_nowait(evt)
        logger.debug(
            "Queued %s %s status %s for %d subscribers",
            evt.entity_type, evt.tracking_code, evt.status, len(self._subscribers),
        )

    async def start(self) -> None:
        if self.running:
            return
        for name, handler, queue in self._subscribers:
            self._start_worker(name, handler, queue)
        logger.info("Status event bus started (%s)", ", ".join(self.subscriber_names) or "no subscribers")

    def _start_worker(self, name: str, handler: Subscriber, queue: asyncio.Queue) -> None:
        self._tasks.append(
            asyncio.create_task(self._worker(name, handler, queue), name=f"status-bus:{name}")
        )

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        for _, _, queue in self._subscribers:
            await queue.join()

    async def stop(self) -> None:
        """Drain queues, then cancel the workers."""
        if not self.running:
            return
        await self.join()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        logger.info("Status event bus stopped")

    @staticmethod
    async def _worker(name: str, handler: Subscriber, queue: asyncio.Queue) -> None:
        while True:
            evt = await queue.get()
            try:
                await handler(evt)
            except Exception:
                logger.exception(
                    "Subscriber %s failed on %s %s", name, evt.entity_type, evt.tracking_code
                )
            finally:
                queue.task_done()


status_bus = StatusEventBus()


# ── Transaction coupling ────────────────────────────────────

def publish_after_commit(
    db: AsyncSession | Session,
    evt: StatusChangedEvent,
    bus: StatusEventBus | None = None,
) -> None:
    """Emit `evt` on `bus` once the session's transaction commits."""
    session = db.sync_session if isinstance(db, AsyncSession) else db
    session.info.setdefault(_PENDING_KEY, []).append((bus or status_bus, evt))


def pending_events(db: AsyncSession | Session) -> list[StatusChangedEvent]:
    session = db.sync_session if isinstance(db, AsyncSession) else db
    return [evt for _, evt in session.info.get(_PENDING_KEY, [])]


@event.listens_for(Session, "after_commit")
def _dispatch_pending(session: Session) -> None:
    for bus, evt in session.info.pop(_PENDING_KEY, []):
        bus.emit(evt)


@event.listens_for(Session, "after_rollback")
def _discard_pending(session: Session) -> None:
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.info("Discarded %d status events after rollback", len(dropped))
