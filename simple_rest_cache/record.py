"""
Cache cell holding the state of one API resource.

A ``Record`` keeps the last fetched payload, its status and timestamp,
the set of locally patched fields and a list of listeners. State
transitions that talk to the server run through ``update_async`` which
serializes them with a per-record ``ExclusiveLock``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .errors import RequestFailed
from .lock import ExclusiveLock
from .models import READY
from .utils import is_success

logger = logging.getLogger(__name__)

UpdateFn = Callable[["Record"], Awaitable[str | None]]
Listener = Callable[["Record", str], bool]


class Record:
    """Manages the data of an API resource."""

    def __init__(
        self,
        data: Any = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.data = data
        self.status = 0
        self.updated_at: float | None = None
        self._clock = clock
        # dict keeps patch order stable for outbound requests
        self._patches: dict[str, None] = {}
        self._listeners: list[Listener] = []
        self._lock = ExclusiveLock()

    def __repr__(self) -> str:
        return f"<Record status={self.status} updated_at={self.updated_at}>"

    @property
    def settled(self) -> bool:
        return bool(self.status)

    @property
    def ok(self) -> bool:
        return is_success(self.status)

    @property
    def pending(self) -> bool:
        """True while an exclusive update holds the lock."""
        return self._lock.locked()

    @property
    def age(self) -> float | None:
        if self.updated_at is None:
            return None
        return self._clock() - self.updated_at

    def is_stale(self, max_age: float | None) -> bool:
        """
        Check whether the record should be fetched again.

        A record is stale when it never completed an update, when there is
        no freshness window, or when its age is strictly greater than it.
        """
        if self.updated_at is None or not max_age:
            return True
        return self._clock() - self.updated_at > max_age

    # Patches

    def patch(self, fields: dict[str, Any]) -> None:
        """Set the given fields on the data and mark them as patched."""
        if self.data is None:
            self.data = {}
        for name, value in fields.items():
            self.data[name] = value
            self._patches[name] = None

    def get_patches(self) -> dict[str, Any]:
        """Return the patched fields with their current values."""
        if self.data is None:
            return {}
        return {name: self.data[name] for name in self._patches if name in self.data}

    def clear_patches(self, fields: Iterable[str] | None = None) -> None:
        """Forget all patches, or only the given fields."""
        if fields is None:
            self._patches.clear()
            return
        for name in fields:
            self._patches.pop(name, None)

    @property
    def dirty(self) -> bool:
        return bool(self._patches)

    # Exclusive updates

    async def update_async(self, update_fn: UpdateFn) -> Record:
        """
        Run ``update_fn`` while holding the record lock.

        When the callback returns an event label the timestamp is refreshed
        and listeners are notified once the lock is released. A falsy return
        value means nothing changed. Exceptions raised by the callback are
        logged and never propagated.
        """
        event: str | None = None
        async with self._lock:
            try:
                event = await update_fn(self) or None
                if event:
                    self.updated_at = self._clock()
            except Exception:  # noqa: BLE001 - lock must never stay held
                logger.exception("Record update failed")
                event = None

        if event:
            self._notify_all(event)
        return self

    # Listeners

    def listen(self, notify: Listener) -> Listener:
        """Register a listener; it is dropped once it returns True."""
        self._listeners.append(notify)
        return notify

    def unlisten(self, notify: Listener) -> None:
        if notify in self._listeners:
            self._listeners.remove(notify)

    def _notify_all(self, event: str) -> None:
        snapshot = list(self._listeners)
        keep: list[Listener] = []
        for notify in snapshot:
            try:
                done = notify(self, event)
            except Exception:  # noqa: BLE001 - one listener must not break the others
                logger.exception("Listener %r failed on %s event", notify, event)
                done = False
            if not done:
                keep.append(notify)

        # Listeners registered while notifying are kept as they are.
        added = [notify for notify in self._listeners if notify not in snapshot]
        self._listeners = [notify for notify in keep if notify in self._listeners] + added

    def wait_event(self, subject: Any, event: str | None = None) -> asyncio.Future[Any]:
        """
        Return a future resolved with ``subject`` on the next matching event.

        The future fails with ``RequestFailed`` when the record settles with
        a status outside ``[200, 400)``. If the record already holds a
        successful response and ``event`` is None or ``"ready"`` the future
        is resolved right away.
        """
        future = asyncio.get_running_loop().create_future()
        if event in (None, READY) and self.ok:
            future.set_result(subject)
            return future

        def on_event(record: Record, label: str) -> bool:
            if event not in (None, READY) and event != label:
                return False
            if future.done():
                return True
            if record.ok:
                future.set_result(subject)
            else:
                future.set_exception(RequestFailed(subject, record.status))
            return True

        self.listen(on_event)
        return future


__all__ = ["Record"]
