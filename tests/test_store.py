"""
Tests for the in-memory row store and the change feed.
"""

from datetime import timedelta

import pytest

from boki_shared.store import InMemoryRowStore, RealtimeManager
from boki_shared.constants import KIOSK_ORDER_ITEMS_SELECT
from boki_shared.store.base import Embed, RecordNotFoundError, RpcNotAvailableError, parse_select

from conftest import NOW


class TestInMemoryRowStore:
    def test_insert_assigns_id_and_timestamps(self, store):
        row = store.insert("things", {"name": "a"})
        assert row["id"]
        assert row["created_at"] == NOW.isoformat()
        assert row["updated_at"] == row["created_at"]

    def test_rows_are_copies(self, store):
        row = store.insert("things", {"name": "a", "tags": ["x"]})
        row["tags"].append("y")
        assert store.select_one("things", row["id"])["tags"] == ["x"]

    def test_filters(self, store):
        store.seed("things", [{"id": str(n), "n": n} for n in range(5)])
        assert [row["n"] for row in store.select("things", [("n", "gte", 3)])] == [3, 4]
        assert [row["n"] for row in store.select("things", [("n", "in", [0, 4])])] == [0, 4]
        assert len(store.select("things", [("n", "neq", 2)])) == 4

    def test_datetime_filters_compare_as_instants(self, store):
        store.seed(
            "things",
            [
                {"id": "old", "created_at": (NOW - timedelta(days=1)).isoformat()},
                {"id": "new", "created_at": NOW.isoformat()},
            ],
        )
        rows = store.select("things", [("created_at", "gte", NOW - timedelta(hours=1))])
        assert [row["id"] for row in rows] == ["new"]

    def test_unknown_operator_rejected(self, store):
        with pytest.raises(ValueError):
            store.select("things", [("n", "like", "a%")])

    def test_order_by_puts_missing_last(self, store):
        store.seed("things", [{"id": "a", "rank": 2}, {"id": "b"}, {"id": "c", "rank": 1}])
        rows = store.select("things", order_by="rank", descending=True)
        assert [row["id"] for row in rows] == ["a", "c", "b"]

    def test_update_and_delete_missing_rows(self, store):
        with pytest.raises(RecordNotFoundError):
            store.update("things", "missing", {"n": 1})
        with pytest.raises(RecordNotFoundError):
            store.delete("things", "missing")

    def test_embed_resolves_by_foreign_key(self, store):
        store.seed("food_items", [{"id": "f-burger", "name": "Burger", "price": "120"}])
        store.seed(
            "lines",
            [{"id": "l1", "food_item_id": "f-burger"}, {"id": "l2", "food_item_id": "gone"}],
        )

        rows = store.select("lines", columns="*, food_items(name)")
        assert rows[0]["food_items"] == {"name": "Burger"}
        assert rows[1]["food_items"] is None

    def test_embed_alias_and_hint(self, store):
        store.seed("size_options", [{"id": "s-large", "name": "Large"}])
        store.seed("lines", [{"id": "l1", "size_id": "s-large", "quantity": 2}])

        row = store.select("lines", columns="quantity, size:size_options!size_id(name)")[0]
        assert row == {"quantity": 2, "size": {"name": "Large"}}


class TestParseSelect:
    def test_plain_columns(self):
        assert parse_select("id, name") == (["id", "name"], [])

    def test_kiosk_item_select(self):
        names, embeds = parse_select(KIOSK_ORDER_ITEMS_SELECT)
        assert names == ["*"]
        assert embeds == [
            Embed(table="food_items", columns="name, image_url", alias="food_item"),
            Embed(table="size_options", columns="name", alias="size", hint="size_id"),
        ]
        assert [embed.foreign_key for embed in embeds] == ["food_item_id", "size_id"]

    def test_unbalanced_parentheses_rejected(self):
        with pytest.raises(ValueError):
            parse_select("*, food_items(name")


class TestRpc:
    def test_rpc(self, store):
        store.register_rpc("add", lambda a, b: a + b)
        assert store.rpc("add", {"a": 1, "b": 2}) == 3
        with pytest.raises(RpcNotAvailableError):
            store.rpc("missing")


class TestRealtimeManager:
    def test_writes_publish_events(self, store, feed):
        events = []
        feed.subscribe("things", events.append)
        row = store.insert("things", {"name": "a"})
        store.update("things", row["id"], {"name": "b"})
        store.delete("things", row["id"])

        assert [event.event_type for event in events] == ["INSERT", "UPDATE", "DELETE"]
        assert events[1].record["name"] == "b"

    def test_seed_does_not_publish(self, store, feed):
        events = []
        feed.subscribe("*", events.append)
        store.seed("things", [{"name": "a"}])
        assert events == []

    def test_event_filter_and_unsubscribe(self):
        feed = RealtimeManager()
        events = []
        subscription = feed.subscribe("orders", events.append, events=("update",))

        assert feed.publish("orders", "INSERT", {"id": "1"}) == 0
        assert feed.publish("orders", "UPDATE", {"id": "1"}) == 1
        subscription.unsubscribe()
        assert feed.publish("orders", "UPDATE", {"id": "1"}) == 0
        assert feed.subscriber_count == 0
        assert len(events) == 1

    def test_unknown_event_type_rejected(self):
        with pytest.raises(ValueError):
            RealtimeManager().subscribe("orders", print, events=("UPSERT",))

    def test_failing_subscriber_does_not_abort_write(self, clock):
        feed = RealtimeManager()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        feed.subscribe("things", broken)
        feed.subscribe("things", received.append)
        store = InMemoryRowStore(feed=feed, clock=clock)

        row = store.insert("things", {"name": "a"})
        assert store.select_one("things", row["id"])["name"] == "a"
        assert len(received) == 1
