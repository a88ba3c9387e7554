"""
Flow tests for the transaction synchronizer.

The remote store and the session are in-memory fakes; the local cache
writes to a temporary directory.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from finance_tracker.models import NotificationKind, TransactionType
from finance_tracker.services.session import SessionResolver, UserIdentity
from finance_tracker.services.storage import LocalCacheStore
from finance_tracker.synchronizer import SyncMode, TransactionSynchronizer
from finance_tracker.validation import validate_transaction

from conftest import FakeRemoteStore, make_draft, make_transaction, run


def build(local_cache, remote_store=None, sessions=None, notifier=None):
    return TransactionSynchronizer(
        local_cache=local_cache,
        remote_store=remote_store,
        session_resolver=sessions,
        notifier=notifier,
    )


@pytest.fixture
def local_sync(local_cache, remote_store, signed_out, notifications):
    synchronizer = build(local_cache, remote_store, signed_out, notifications)
    run(synchronizer.initialize())
    return synchronizer


@pytest.fixture
def remote_sync(local_cache, remote_store, signed_in, notifications, alice):
    remote_store.rows[alice.id] = [
        make_transaction("r2", date=datetime(2024, 3, 20, tzinfo=timezone.utc)),
        make_transaction("r1", date=datetime(2024, 2, 10, tzinfo=timezone.utc)),
    ]
    synchronizer = build(local_cache, remote_store, signed_in, notifications)
    run(synchronizer.initialize())
    notifications.drain()
    remote_store.calls.clear()
    return synchronizer


class TestInitialize:
    """Tests for the startup protocol."""

    def test_starts_loading(self, local_cache):
        synchronizer = build(local_cache)
        assert synchronizer.is_loading is True
        run(synchronizer.initialize())
        assert synchronizer.is_loading is False

    def test_no_session_uses_local_cache(self, local_cache, remote_store, signed_out):
        local_cache.save([make_transaction("1")])
        synchronizer = build(local_cache, remote_store, signed_out)

        assert run(synchronizer.initialize()) == SyncMode.LOCAL_ONLY
        assert [t.id for t in synchronizer.transactions] == ["1"]
        assert synchronizer.owner is None
        assert remote_store.calls == []

    def test_session_loads_remote_and_mirrors_cache(self, remote_sync, local_cache, alice):
        assert remote_sync.mode == SyncMode.REMOTE_BACKED
        assert remote_sync.owner == alice
        assert [t.id for t in remote_sync.transactions] == ["r2", "r1"]
        assert [t.id for t in local_cache.load()] == ["r2", "r1"]

    def test_remote_failure_falls_back_to_cache(
        self, local_cache, remote_store, signed_in, notifications
    ):
        local_cache.save([make_transaction("cached")])
        remote_store.failing.add("list")
        synchronizer = build(local_cache, remote_store, signed_in, notifications)

        assert run(synchronizer.initialize()) == SyncMode.LOCAL_ONLY
        assert [t.id for t in synchronizer.transactions] == ["cached"]
        assert notifications.kinds == [NotificationKind.REMOTE_UNAVAILABLE]

    def test_local_only_after_failed_load_never_calls_remote(
        self, local_cache, remote_store, signed_in
    ):
        remote_store.failing.add("list")
        synchronizer = build(local_cache, remote_store, signed_in)
        run(synchronizer.initialize())
        remote_store.failing.clear()

        run(synchronizer.add(make_draft()))
        run(synchronizer.add(make_draft(description="Tea")))

        assert remote_store.calls == ["list"]
        assert len(synchronizer.transactions) == 2

    def test_session_without_remote_store(self, local_cache, signed_in):
        synchronizer = build(local_cache, None, signed_in)
        assert run(synchronizer.initialize()) == SyncMode.LOCAL_ONLY

    def test_failing_session_resolver_means_no_session(self, local_cache, remote_store):
        class BrokenResolver(SessionResolver):
            async def current_user(self):
                raise RuntimeError("token expired")

        synchronizer = build(local_cache, remote_store, BrokenResolver())
        assert run(synchronizer.initialize()) == SyncMode.LOCAL_ONLY
        assert remote_store.calls == []

    def test_reinitialize_redetermines_mode(self, remote_sync, signed_in):
        signed_in.sign_out()
        assert run(remote_sync.initialize()) == SyncMode.LOCAL_ONLY
        # The mirrored cache is what local mode starts from
        assert [t.id for t in remote_sync.transactions] == ["r2", "r1"]


class TestAddLocal:
    """Tests for add() without a session."""

    def test_add_without_session(self, local_sync, notifications, local_cache):
        count_before = len(local_sync.transactions)
        stored = run(local_sync.add(make_draft(
            description="Coffee", amount=Decimal("5"), type=TransactionType.EXPENSE, category="Lazer",
        )))

        assert stored.id.isdigit()
        assert local_sync.transactions[0] == stored
        assert len(local_sync.transactions) == count_before + 1
        assert stored.description == "Coffee"
        assert stored.amount == Decimal("5")
        assert stored.type == TransactionType.EXPENSE
        assert stored.category == "Lazer"
        assert stored.is_recurring is False
        assert notifications.kinds == [NotificationKind.ADDED_LOCALLY]
        assert local_cache.load() == [stored]

    def test_newest_first(self, local_sync):
        first = run(local_sync.add(make_draft(description="First")))
        second = run(local_sync.add(make_draft(description="Second")))
        assert [t.id for t in local_sync.transactions] == [second.id, first.id]

    def test_local_ids_are_unique_and_increasing(self, local_sync):
        ids = [int(run(local_sync.add(make_draft())).id) for _ in range(5)]
        assert ids == sorted(set(ids))

    def test_explicit_date_is_kept(self, local_sync):
        when = datetime(2023, 12, 24, 18, 0, tzinfo=timezone.utc)
        assert run(local_sync.add(make_draft(date=when))).date == when

    def test_validated_amounts_survive_reload(self, local_sync, local_cache):
        """Test that every amount the form accepts reads back unchanged."""
        run(local_sync.add(make_draft(description="Rent", amount=Decimal("1200"))))
        for amount in ("0.01", "10.12", "999999.99", "3.100"):
            result = validate_transaction({
                "description": "Item", "amount": amount, "type": "expense", "category": "Compras",
            })
            run(local_sync.add(result.draft))

        reloaded = build(local_cache)
        run(reloaded.initialize())

        assert reloaded.transactions == local_sync.transactions
        assert [t.amount for t in reloaded.transactions] == [
            Decimal("3.10"), Decimal("999999.99"), Decimal("10.12"), Decimal("0.01"), Decimal("1200"),
        ]

    def test_rejected_amount_never_reaches_the_cache(self, local_sync, local_cache):
        run(local_sync.add(make_draft(description="Rent", amount=Decimal("1200"))))
        result = validate_transaction({
            "description": "Dust", "amount": "1e-400", "type": "expense", "category": "Outros",
        })

        assert result.draft is None
        assert [t.description for t in local_cache.load()] == ["Rent"]


class TestAddRemote:
    """Tests for add() in remote-backed mode."""

    def test_add_goes_to_remote(self, remote_sync, remote_store, notifications, local_cache, alice):
        stored = run(remote_sync.add(make_draft(description="Cinema")))

        assert stored.id == "remote-1"
        assert remote_store.calls == ["insert"]
        assert remote_store.rows[alice.id][0] == stored
        assert remote_sync.transactions[0] == stored
        assert notifications.kinds == [NotificationKind.ADDED]
        assert local_cache.load()[0] == stored

    def test_remote_failure_falls_back_for_one_call(self, remote_sync, remote_store, notifications):
        remote_store.failing.add("insert")
        fallback = run(remote_sync.add(make_draft(description="Offline")))

        assert fallback.id.isdigit()
        assert remote_sync.transactions[0] == fallback
        assert remote_sync.mode == SyncMode.REMOTE_BACKED
        assert notifications.kinds == [
            NotificationKind.REMOTE_UNAVAILABLE,
            NotificationKind.ADDED_LOCALLY,
        ]

        remote_store.failing.clear()
        retried = run(remote_sync.add(make_draft(description="Online")))
        assert retried.id == "remote-1"
        assert remote_store.calls == ["insert", "insert"]

    def test_signed_out_mid_session_stays_local(self, remote_sync, remote_store, signed_in):
        signed_in.sign_out()
        stored = run(remote_sync.add(make_draft()))
        assert stored.id.isdigit()
        assert remote_store.calls == []

    def test_different_owner_mid_session_stays_local(self, remote_sync, remote_store, signed_in):
        signed_in.sign_in(UserIdentity(id="user-bob"))
        run(remote_sync.add(make_draft()))
        assert remote_store.calls == []
        assert "user-bob" not in remote_store.rows


class TestUpdate:
    """Tests for update()."""

    def test_update_replaces_only_matching_record(self, local_sync):
        a = run(local_sync.add(make_draft(description="A")))
        b = run(local_sync.add(make_draft(description="B")))
        c = run(local_sync.add(make_draft(description="C")))

        updated = run(local_sync.update(b.id, make_draft(
            description="B2", amount=Decimal("99.90"), type=TransactionType.INCOME,
            category="Vendas", is_recurring=True,
        )))

        assert [t.id for t in local_sync.transactions] == [c.id, b.id, a.id]
        assert local_sync.get(b.id) == updated
        assert updated.description == "B2"
        assert updated.is_recurring is True
        assert updated.date == b.date
        assert local_sync.get(a.id) == a
        assert local_sync.get(c.id) == c

    def test_update_notifies_and_persists(self, local_sync, notifications, local_cache):
        stored = run(local_sync.add(make_draft()))
        notifications.drain()
        run(local_sync.update(stored.id, make_draft(description="Espresso")))

        assert notifications.kinds == [NotificationKind.UPDATED]
        assert local_cache.load()[0].description == "Espresso"

    def test_update_unknown_id(self, local_sync, notifications):
        run(local_sync.add(make_draft()))
        before = local_sync.transactions
        notifications.drain()

        assert run(local_sync.update("missing", make_draft(description="X"))) is None
        assert local_sync.transactions == before
        assert notifications.notifications == []

    def test_update_goes_to_remote(self, remote_sync, remote_store, alice):
        updated = run(remote_sync.update("r1", make_draft(description="Edited")))

        assert remote_store.calls == ["update"]
        assert updated.id == "r1"
        assert remote_sync.get("r1").description == "Edited"
        assert [t.id for t in remote_sync.transactions] == ["r2", "r1"]
        assert [t for t in remote_store.rows[alice.id] if t.id == "r1"][0].description == "Edited"

    def test_remote_not_found_falls_back_to_local(self, remote_sync, remote_store, notifications, alice):
        remote_store.rows[alice.id] = []
        updated = run(remote_sync.update("r2", make_draft(description="Kept locally")))

        assert updated.description == "Kept locally"
        assert remote_sync.get("r2") == updated
        assert notifications.kinds == [
            NotificationKind.REMOTE_UNAVAILABLE,
            NotificationKind.UPDATED,
        ]


class TestDelete:
    """Tests for delete()."""

    def test_delete_present(self, local_sync, notifications):
        a = run(local_sync.add(make_draft(description="A")))
        b = run(local_sync.add(make_draft(description="B")))
        notifications.drain()

        assert run(local_sync.delete(a.id)) is True
        assert [t.id for t in local_sync.transactions] == [b.id]
        assert notifications.last.kind == NotificationKind.REMOVED
        assert notifications.last.is_destructive

    def test_delete_absent_is_not_an_error(self, local_sync):
        run(local_sync.add(make_draft()))
        assert run(local_sync.delete("missing")) is False
        assert len(local_sync.transactions) == 1

    def test_delete_goes_to_remote(self, remote_sync, remote_store, local_cache, alice):
        assert run(remote_sync.delete("r2")) is True
        assert remote_store.calls == ["delete"]
        assert [t.id for t in remote_store.rows[alice.id]] == ["r1"]
        assert [t.id for t in local_cache.load()] == ["r1"]

    def test_remote_delete_failure_still_removes_locally(self, remote_sync, remote_store, alice):
        remote_store.failing.add("delete")
        assert run(remote_sync.delete("r2")) is True
        assert [t.id for t in remote_sync.transactions] == ["r1"]
        assert len(remote_store.rows[alice.id]) == 2

    def test_remote_clear_failure_still_clears_locally(
        self, remote_sync, remote_store, local_cache, notifications, alice
    ):
        remote_store.failing.add("clear")

        assert run(remote_sync.clear()) == 2
        assert remote_sync.transactions == ()
        assert local_cache.load() == []
        assert notifications.kinds == [
            NotificationKind.REMOTE_UNAVAILABLE,
            NotificationKind.CLEARED,
        ]
        assert remote_sync.mode == SyncMode.REMOTE_BACKED
        assert len(remote_store.rows[alice.id]) == 2


class TestClear:
    """Tests for clear()."""

    def test_clear_local(self, local_sync, local_cache, notifications):
        for description in ("A", "B", "C"):
            run(local_sync.add(make_draft(description=description)))
        notifications.drain()

        assert run(local_sync.clear()) == 3
        assert local_sync.transactions == ()
        assert local_cache.load() == []
        assert notifications.kinds == [NotificationKind.CLEARED]

    def test_clear_empty(self, local_sync):
        assert run(local_sync.clear()) == 0
        assert local_sync.transactions == ()

    def test_clear_remote_is_owner_scoped(self, remote_sync, remote_store, alice):
        remote_store.rows["someone-else"] = [make_transaction("x")]
        assert run(remote_sync.clear()) == 2
        assert remote_store.rows[alice.id] == []
        assert remote_store.rows["someone-else"] != []


class TestDerivedReads:
    """Tests for month and recurring projections."""

    def test_transactions_in_month(self, local_sync):
        march = run(local_sync.add(make_draft(date=datetime(2024, 3, 31, 23, 0, tzinfo=timezone.utc))))
        run(local_sync.add(make_draft(date=datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc))))
        run(local_sync.add(make_draft(date=datetime(2023, 3, 15, tzinfo=timezone.utc))))

        assert local_sync.transactions_in_month(2024, 3) == [march]
        assert local_sync.transactions_in_month(2024, 5) == []

    def test_transactions_in_month_empty(self, local_sync):
        assert local_sync.transactions_in_month(2024, 1) == []

    def test_recurring_transactions(self, local_sync):
        rent = run(local_sync.add(make_draft(description="Rent", is_recurring=True)))
        run(local_sync.add(make_draft(description="Snack")))
        assert local_sync.recurring_transactions() == [rent]

    def test_reads_reflect_latest_state(self, local_sync):
        rent = run(local_sync.add(make_draft(description="Rent", is_recurring=True)))
        assert local_sync.recurring_transactions() == [rent]
        run(local_sync.delete(rent.id))
        assert local_sync.recurring_transactions() == []


class TestResilience:
    """Tests that storage and sink failures never break an operation."""

    def test_cache_write_failure_keeps_memory_state(self, tmp_path, notifications):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        cache = LocalCacheStore(directory=blocker, storage_key="k", notifier=notifications)
        synchronizer = build(cache, notifier=notifications)
        run(synchronizer.initialize())
        notifications.drain()

        stored = run(synchronizer.add(make_draft()))

        assert synchronizer.transactions == (stored,)
        assert notifications.kinds == [
            NotificationKind.SAVE_FAILED,
            NotificationKind.ADDED_LOCALLY,
        ]

    def test_failing_notifier(self, local_cache):
        class BrokenSink:
            def notify(self, notification):
                raise RuntimeError("sink down")

        synchronizer = build(local_cache, notifier=BrokenSink())
        run(synchronizer.initialize())
        stored = run(synchronizer.add(make_draft()))
        assert synchronizer.transactions == (stored,)

    def test_transactions_snapshot_is_read_only(self, local_sync):
        run(local_sync.add(make_draft()))
        snapshot = local_sync.transactions
        assert isinstance(snapshot, tuple)
        run(local_sync.clear())
        assert len(snapshot) == 1
