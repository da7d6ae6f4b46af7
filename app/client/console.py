"""
Door console: a polled guest list with guarded foreground actions.

The console keeps the last guest list it successfully fetched. A poll
response is only applied when it is still the freshest view of the list:

* a newer poll has not been applied already,
* no check-in / undo / delete started or finished while it was in flight,
* the console has not been stopped.

Poll failures never reach the operator; the snapshot is only marked stale.
Foreground actions raise their errors and apply the server's record only
when the request succeeded.
"""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from app.client.http import DoorClient
from app.core.config import settings
from app.core.errors import ActionInProgress, LedgerError

logger = logging.getLogger(__name__)

ACTION_CHECK_IN = "check_in"
ACTION_UNDO = "undo_check_in"
ACTION_DELETE = "delete"


def _count(guests: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {"total": 0, "pending": 0, "checked": 0}
    for guest in guests:
        counts["total"] += 1
        if guest.get("status") in counts:
            counts[guest["status"]] += 1
    return counts


@dataclass
class ListingSnapshot:
    """Last known good guest list"""

    guests: List[Dict[str, Any]]
    counts: Dict[str, int]
    fetched_at: datetime
    stale: bool = False

    def apply_record(self, record: Dict[str, Any]) -> None:
        """Replace one guest with the server's authoritative copy"""
        if record.get("status") == "deleted":
            self.guests = [g for g in self.guests if g["id"] != record["id"]]
        else:
            self.guests = [record if g["id"] == record["id"] else g for g in self.guests]
        self.counts = _count(self.guests)


@dataclass
class ActionGuard:
    """Rejects a second submission of the same action on the same guest"""

    in_flight: Set[Tuple[int, str]] = field(default_factory=set)

    def acquire(self, record_id: int, action: str) -> None:
        key = (record_id, action)
        if key in self.in_flight:
            raise ActionInProgress()
        self.in_flight.add(key)

    def release(self, record_id: int, action: str) -> None:
        self.in_flight.discard((record_id, action))

    def is_busy(self, record_id: int, action: Optional[str] = None) -> bool:
        if action is not None:
            return (record_id, action) in self.in_flight
        return any(rid == record_id for rid, _ in self.in_flight)

    @contextmanager
    def hold(self, record_id: int, action: str):
        self.acquire(record_id, action)
        try:
            yield
        finally:
            self.release(record_id, action)


class DoorConsole:
    """Guest list view for one venue night"""

    def __init__(
        self,
        client: DoorClient,
        venue_id: int,
        on_date: Optional[date] = None,
        selector: str = "all",
        sort: str = "created",
        poll_interval: Optional[float] = None,
    ):
        self.client = client
        self.venue_id = venue_id
        self.on_date = on_date
        self.selector = selector
        self.sort = sort
        self.poll_interval = poll_interval if poll_interval is not None else settings.POLL_INTERVAL_SECONDS

        self.snapshot: Optional[ListingSnapshot] = None
        self.guard = ActionGuard()

        self._poll_seq = 0
        self._applied_seq = 0
        # Bumped when a mutation starts and again when it finishes
        self._generation = 0
        self._stopped = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _poll_loop(self) -> None:
        while not self._stopped:
            await self.refresh()
            await asyncio.sleep(self.poll_interval)

    async def refresh(self) -> bool:
        """Fetch the list once; returns True when the response was applied"""
        self._poll_seq += 1
        seq = self._poll_seq
        generation = self._generation

        try:
            data = await self.client.list_guests(self.venue_id, self.on_date, self.selector, self.sort)
        except LedgerError as e:
            logger.debug(f"Guest list poll {seq} failed: {e}")
            if self.snapshot is not None:
                self.snapshot.stale = True
            return False

        if self._stopped:
            return False
        if seq <= self._applied_seq or generation != self._generation or self.guard.in_flight:
            logger.debug(f"Discarding stale guest list poll {seq}")
            return False

        self._applied_seq = seq
        self.snapshot = ListingSnapshot(
            guests=list(data.get("guests", [])),
            counts=data.get("counts") or _count(data.get("guests", [])),
            fetched_at=datetime.utcnow(),
        )
        return True

    async def _mutate(
        self,
        guest_id: int,
        action: str,
        call: Callable[[int], Awaitable[Dict[str, Any]]],
    ) -> Dict[str, Any]:
        with self.guard.hold(guest_id, action):
            self._generation += 1
            try:
                record = await call(guest_id)
            finally:
                self._generation += 1

        if self.snapshot is not None and not self._stopped:
            self.snapshot.apply_record(record)
        return record

    async def check_in(self, guest_id: int) -> Dict[str, Any]:
        return await self._mutate(guest_id, ACTION_CHECK_IN, self.client.check_in)

    async def undo_check_in(self, guest_id: int) -> Dict[str, Any]:
        return await self._mutate(guest_id, ACTION_UNDO, self.client.undo_check_in)

    async def delete(self, guest_id: int) -> Dict[str, Any]:
        return await self._mutate(guest_id, ACTION_DELETE, self.client.delete_guest)
