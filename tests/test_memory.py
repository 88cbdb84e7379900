import threading
import time
from chatadmin.memory import Namespace, TTLStore
from chatadmin.scheduler import ExpiryScheduler
from conftest import USER_TTL, IP_TTL

USERS = Namespace.SEALED_USERS
IPS = Namespace.SEALED_IPS


def wait_for(fn, timeout=3.0, interval=0.01):
    end = time.time() + timeout
    while time.time() < end:
        if fn():
            return True
        time.sleep(interval)
    return False


def test_insert_then_exists_until_ttl(store, clock):
    assert store.insert(USERS, "u1") is True
    assert store.exists(USERS, "u1")

    clock.advance(USER_TTL - 1)
    assert store.exists(USERS, "u1")
    assert store.scheduler.run_pending() == 0

    clock.advance(1)
    # past the deadline the entry reads as absent even before the sweep
    assert not store.exists(USERS, "u1")
    assert store.scheduler.run_pending() == 1
    assert "u1" not in store._data[USERS]


def test_duplicate_insert_is_rejected(store, clock):
    assert store.insert(IPS, "1.2.3.4") is True
    clock.advance(10)
    assert store.insert(IPS, "1.2.3.4") is False
    assert store.size(IPS) == 1
    assert store.scheduler.pending() == 1

    # a rejected insert does not extend the entry
    clock.advance(IP_TTL - 10)
    assert not store.exists(IPS, "1.2.3.4")


def test_namespaces_have_independent_ttls(store, clock):
    store.insert(USERS, "same")
    store.insert(IPS, "same")
    clock.advance(USER_TTL)
    store.scheduler.run_pending()

    assert not store.exists(USERS, "same")
    assert store.exists(IPS, "same")


def test_remove_is_idempotent(store):
    assert store.remove(USERS, "missing") is False

    store.insert(USERS, "u1")
    assert store.remove(USERS, "u1") is True
    assert store.remove(USERS, "u1") is False
    assert not store.exists(USERS, "u1")
    # the pending removal was cancelled with the entry
    assert store.scheduler.pending() == 0


def test_stale_removal_leaves_newer_entry(store, clock):
    store.insert(USERS, "u1")
    old_removal = store._data[USERS]["u1"].removal
    store.remove(USERS, "u1")
    store.insert(USERS, "u1")

    # even if the old callback ran it must not touch the new entry
    old_removal.callback()
    assert store.exists(USERS, "u1")


def test_reinsert_after_deadline_before_sweep(store, clock):
    store.insert(USERS, "u1")
    clock.advance(USER_TTL)
    assert store.insert(USERS, "u1") is True
    assert store.scheduler.pending() == 1

    # the first removal was cancelled, the second is still ahead
    assert store.scheduler.run_pending() == 0
    assert store.exists(USERS, "u1")

    clock.advance(USER_TTL)
    assert store.scheduler.run_pending() == 1
    assert not store.exists(USERS, "u1")


def test_list_is_a_snapshot(store, clock):
    store.insert(IPS, "10.0.0.1")
    store.insert(IPS, "10.0.0.2")
    snapshot = store.list(IPS)
    store.insert(IPS, "10.0.0.3")

    assert snapshot == {"10.0.0.1", "10.0.0.2"}
    assert store.list(IPS) == {"10.0.0.1", "10.0.0.2", "10.0.0.3"}
    assert store.list(USERS) == set()

    clock.advance(IP_TTL)
    assert store.list(IPS) == set()


def test_clear_cancels_everything(store):
    store.insert(USERS, "a")
    store.insert(IPS, "b")
    store.clear()
    assert store.size(USERS) == 0
    assert store.size(IPS) == 0
    assert store.scheduler.pending() == 0


def test_entries_expire_with_running_scheduler():
    scheduler = ExpiryScheduler(slack=0.05)
    store = TTLStore({USERS: 0.05, IPS: 0.05}, scheduler)
    scheduler.start()
    try:
        store.insert(USERS, "u1")
        assert store.exists(USERS, "u1")
        assert wait_for(lambda: "u1" not in store._data[USERS])
        assert scheduler.pending() == 0
    finally:
        scheduler.stop(timeout=2.0)


def test_listing_while_removals_fire():
    scheduler = ExpiryScheduler(slack=0.01)
    store = TTLStore({USERS: 0.02, IPS: 0.02}, scheduler)
    keys = {f"10.0.{i // 256}.{i % 256}" for i in range(300)}
    errors = []
    snapshots = []

    def reader():
        try:
            while True:
                snap = store.list(IPS)
                snapshots.append(snap)
                if not snap and len(snapshots) > 1:
                    return
                time.sleep(0.001)
        except Exception as exc:
            errors.append(exc)

    scheduler.start()
    try:
        for key in keys:
            store.insert(IPS, key)
        t = threading.Thread(target=reader)
        t.start()
        t.join(5.0)
        assert wait_for(lambda: not store._data[IPS])
    finally:
        scheduler.stop(timeout=2.0)

    assert errors == []
    assert all(snap <= keys for snap in snapshots)
