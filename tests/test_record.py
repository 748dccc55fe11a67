import asyncio

import pytest

from simple_rest_cache.errors import RequestFailed
from simple_rest_cache.lock import ExclusiveLock
from simple_rest_cache.record import Record
from simple_rest_cache.store import InMemoryStore


def test_patch_round_trip():
    record = Record({"a": 0, "b": 2})

    record.patch({"a": 1})

    assert record.get_patches() == {"a": 1}
    assert record.data == {"a": 1, "b": 2}
    assert record.dirty

    record.clear_patches()
    assert record.get_patches() == {}
    assert not record.dirty


def test_patch_on_empty_record_creates_data():
    record = Record()
    record.patch({"name": "x"})
    assert record.data == {"name": "x"}
    assert record.get_patches() == {"name": "x"}


def test_clear_patches_for_selected_fields():
    record = Record({})
    record.patch({"a": 1, "b": 2})
    record.clear_patches(["a"])
    assert record.get_patches() == {"b": 2}


def test_get_patches_reports_current_value():
    record = Record({})
    record.patch({"a": 1})
    record.data["a"] = 5
    assert record.get_patches() == {"a": 5}


@pytest.mark.asyncio
async def test_update_sets_timestamp_and_notifies():
    record = Record(clock=lambda: 42.0)
    events = []
    record.listen(lambda rec, event: events.append((rec, event)) and False)

    async def update(rec):
        rec.data = {"id": 1}
        rec.status = 200
        return "read"

    result = await record.update_async(update)

    assert result is record
    assert record.updated_at == 42.0
    assert events == [(record, "read")]


@pytest.mark.asyncio
async def test_falsy_update_is_a_noop():
    record = Record()
    events = []
    record.listen(lambda rec, event: events.append(event))

    async def update(rec):
        return None

    await record.update_async(update)

    assert record.updated_at is None
    assert events == []


@pytest.mark.asyncio
async def test_listener_stays_until_it_returns_true():
    record = Record()
    seen = []

    def listener(rec, event):
        seen.append(event)
        return event == "update"

    record.listen(listener)

    async def emit(label):
        async def update(rec):
            return label

        await record.update_async(update)

    await emit("read")
    await emit("update")
    await emit("delete")

    assert seen == ["read", "update"]


@pytest.mark.asyncio
async def test_raising_listener_stays_registered(caplog):
    record = Record()
    seen = []

    def listener(rec, event):
        seen.append(event)
        if event == "read":
            raise RuntimeError("boom")
        return event == "update"

    record.listen(listener)

    async def emit(label):
        async def update(rec):
            return label

        await record.update_async(update)

    await emit("read")
    await emit("update")
    await emit("delete")

    assert seen == ["read", "update"]
    assert "failed on read event" in caplog.text


@pytest.mark.asyncio
async def test_updates_run_one_at_a_time_in_call_order():
    record = Record()
    order = []
    active = 0

    def make_update(label):
        async def update(rec):
            nonlocal active
            active += 1
            assert active == 1
            order.append(label)
            await asyncio.sleep(0)
            active -= 1
            return None

        return update

    await asyncio.gather(*(record.update_async(make_update(i)) for i in range(5)))

    assert order == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_lock_is_released_when_update_raises(caplog):
    record = Record()
    events = []
    record.listen(lambda rec, event: events.append(event))

    async def broken(rec):
        rec.status = 500
        raise RuntimeError("boom")

    async def working(rec):
        rec.status = 200
        return "read"

    await record.update_async(broken)
    assert not record.pending
    assert record.status == 500
    assert events == []
    assert "Record update failed" in caplog.text

    await asyncio.wait_for(record.update_async(working), timeout=1)
    assert record.status == 200
    assert events == ["read"]


@pytest.mark.asyncio
async def test_listener_may_update_same_record():
    record = Record()
    seen = []

    async def second(rec):
        return "second"

    def listener(rec, event):
        seen.append(event)
        if event == "first":
            asyncio.ensure_future(rec.update_async(second))
        return False

    record.listen(listener)

    async def first(rec):
        return "first"

    await record.update_async(first)
    await asyncio.sleep(0.01)

    assert seen == ["first", "second"]


@pytest.mark.asyncio
async def test_wait_event_resolves_immediately_when_settled():
    record = Record({"id": 1})
    record.status = 200

    future = record.wait_event("subject")

    assert future.done()
    assert future.result() == "subject"


@pytest.mark.asyncio
async def test_wait_event_rejects_on_error_status():
    record = Record()
    future = record.wait_event("subject")

    async def update(rec):
        rec.status = 404
        return "read"

    await record.update_async(update)

    with pytest.raises(RequestFailed) as exc:
        await future
    assert exc.value.status == 404
    assert exc.value.subject == "subject"


@pytest.mark.asyncio
async def test_wait_event_filters_labels():
    record = Record()
    future = record.wait_event("subject", "update")

    async def read(rec):
        rec.status = 200
        return "read"

    async def update(rec):
        return "update"

    await record.update_async(read)
    assert not future.done()

    await record.update_async(update)
    assert await future == "subject"


def test_is_stale_uses_strict_comparison():
    now = 100.0
    record = Record(clock=lambda: now)
    assert record.is_stale(10)

    record.updated_at = 90.0
    assert not record.is_stale(10)
    assert record.is_stale(9.5)
    assert record.is_stale(0)
    assert record.is_stale(None)


@pytest.mark.asyncio
async def test_exclusive_lock_hands_over_in_arrival_order():
    lock = ExclusiveLock()
    order = []

    async def worker(name):
        async with lock:
            order.append(name)
            await asyncio.sleep(0)

    await asyncio.gather(worker("a"), worker("b"), worker("c"))

    assert order == ["a", "b", "c"]
    assert not lock.locked()


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_hold_the_lock():
    lock = ExclusiveLock()
    await lock.acquire()

    waiter = asyncio.ensure_future(lock.acquire())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    lock.release()
    assert not lock.locked()
    assert lock.waiting == 0


def test_release_unlocked_lock_raises():
    with pytest.raises(RuntimeError):
        ExclusiveLock().release()


def test_store_get_and_set():
    store = InMemoryStore()
    record = Record()

    assert store.get("/users/1") is None
    assert store.set("/users/1", record) is record
    assert store.get("/users/1") is record
    assert "/users/1" in store
    assert len(store) == 1


def test_store_applies_hash_to_keys():
    store = InMemoryStore(hash=lambda key: key.lower())
    record = store.set("/Users/1", Record())
    assert store.get("/users/1") is record
