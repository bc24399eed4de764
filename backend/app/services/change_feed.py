"""Change feed - background listener over the change_events outbox.

Polls unprocessed events in id order and handles each in its own
transaction: the notifier's writes and the event's processed mark commit
together. Pushes and external delivery run only after that commit. A failing
event is recorded and retried on later polls, up to a limit; it never stops
the loop. Handled and parked events are deleted once past the retention window.
"""

import asyncio
import logging
import time
from datetime import timedelta

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.change_capture import Entity
from app.db.database import utcnow
from app.models.change_event import ChangeEvent
from app.models.user import User
from app.services.connection_manager import ConnectionManager
from app.services.delivery import MessageDelivery
from app.services.notifier import Notifier, Outbound

logger = logging.getLogger(__name__)


def superseded_events(events: list[tuple[int, str, dict]]) -> set[int]:
    """Availability events of one user that a later event in the batch replaces.

    `events` is (id, entity, record) in id order.
    """
    latest: dict[int, int] = {}
    for event_id, entity, record in events:
        if entity == Entity.AVAILABILITY.value:
            latest[record["user_id"]] = event_id
    keep = set(latest.values())
    return {
        event_id
        for event_id, entity, _ in events
        if entity == Entity.AVAILABILITY.value and event_id not in keep
    }


class ChangeFeed:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        connections: ConnectionManager,
        delivery: MessageDelivery | None = None,
        poll_interval: float | None = None,
        batch_size: int | None = None,
        max_attempts: int | None = None,
        retention: timedelta | None = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.connections = connections
        self.delivery = delivery
        self.poll_interval = poll_interval or settings.CHANGE_FEED_POLL_INTERVAL
        self.batch_size = batch_size or settings.CHANGE_FEED_BATCH_SIZE
        self.max_attempts = max_attempts or settings.CHANGE_FEED_MAX_ATTEMPTS
        self.retention = retention or timedelta(hours=settings.CHANGE_FEED_RETENTION_HOURS)
        self._last_prune = 0.0

    async def _claim_batch(self) -> list[int]:
        """Ids to handle this poll; superseded availability events are closed here."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(ChangeEvent.id, ChangeEvent.entity, ChangeEvent.record)
                .where(
                    ChangeEvent.processed_at.is_(None),
                    ChangeEvent.attempts < self.max_attempts,
                )
                .order_by(ChangeEvent.id)
                .limit(self.batch_size)
            )
            events = [tuple(row) for row in result.all()]
            skipped = superseded_events(events)
            if skipped:
                await db.execute(
                    update(ChangeEvent)
                    .where(ChangeEvent.id.in_(skipped), ChangeEvent.processed_at.is_(None))
                    .values(processed_at=utcnow())
                )
                await db.commit()
        return [event[0] for event in events if event[0] not in skipped]

    async def _process(self, event_id: int) -> list[Outbound]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ChangeEvent)
                .where(ChangeEvent.id == event_id, ChangeEvent.processed_at.is_(None))
                .with_for_update(skip_locked=True)
            )
            event = result.scalar_one_or_none()
            if event is None:
                # Handled or locked by another listener
                return []

            outbound = await self.notifier.handle(db, event)
            event.processed_at = utcnow()
            event.attempts += 1
            await db.commit()
            return outbound

    async def _record_failure(self, event_id: int, exc: Exception) -> None:
        async with self.session_factory() as db:
            await db.execute(
                update(ChangeEvent)
                .where(ChangeEvent.id == event_id)
                .values(attempts=ChangeEvent.attempts + 1, last_error=repr(exc)[:1000])
            )
            await db.commit()

    async def _dispatch(self, outbound: list[Outbound]) -> None:
        for item in outbound:
            self.connections.push(item.user_id, item.message)

        notices = [item for item in outbound if item.deliver]
        if not notices or self.delivery is None:
            return
        async with self.session_factory() as db:
            for item in notices:
                user = await db.get(User, item.user_id)
                if user is None:
                    continue
                try:
                    await self.delivery.deliver(user, item.notification)
                except Exception:
                    # The notification row is already durable
                    logger.exception("Delivery of notification %s failed", item.notification.id)

    async def drain(self) -> int:
        """Handle one batch. Returns the number of events claimed."""
        event_ids = await self._claim_batch()
        for event_id in event_ids:
            try:
                outbound = await self._process(event_id)
            except Exception as e:
                logger.error("Change event %s failed", event_id, exc_info=True)
                await self._record_failure(event_id, e)
                continue
            await self._dispatch(outbound)
        return len(event_ids)

    async def prune(self) -> int:
        """Delete handled and parked events past the retention window. Returns the count."""
        cutoff = utcnow() - self.retention
        async with self.session_factory() as db:
            result = await db.execute(
                delete(ChangeEvent).where(
                    or_(
                        ChangeEvent.processed_at < cutoff,
                        and_(
                            ChangeEvent.processed_at.is_(None),
                            ChangeEvent.attempts >= self.max_attempts,
                            ChangeEvent.created_at < cutoff,
                        ),
                    )
                )
            )
            await db.commit()
        if result.rowcount:
            logger.info("Pruned %d change events", result.rowcount)
        return result.rowcount

    async def run_forever(self) -> None:
        logger.info("Change feed started (poll every %.1fs)", self.poll_interval)
        while True:
            try:
                claimed = await self.drain()
            except Exception:
                logger.exception("Change feed poll failed")
                claimed = 0
            if time.monotonic() - self._last_prune >= settings.CHANGE_FEED_PRUNE_INTERVAL:
                self._last_prune = time.monotonic()
                try:
                    await self.prune()
                except Exception:
                    logger.exception("Change feed prune failed")
            if claimed < self.batch_size:
                await asyncio.sleep(self.poll_interval)
