"""Tests for the gateway filter dialect and the Mongo translation."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from utils.errors import ValidationFailed
from utils.gateway import matches_filter, sort_rows
from utils.indexes import INDEXES, ensure_indexes
from utils.mongo import parse_object_id, serialize_doc, to_mongo_filter


class TestMatchesFilter:
    def test_equality_in_and_ne(self):
        row = {"status": "pending", "buyer_id": "b1"}

        assert matches_filter(row, None)
        assert matches_filter(row, {"status": "pending", "buyer_id": "b1"})
        assert not matches_filter(row, {"status": "completed"})
        assert matches_filter(row, {"status": {"$in": ["pending", "in_progress"]}})
        assert not matches_filter(row, {"status": {"$ne": "pending"}})

    def test_missing_field_is_none(self):
        assert matches_filter({}, {"order_id": None})
        assert not matches_filter({}, {"order_id": "o1"})

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            matches_filter({"rating": 4}, {"rating": {"$gt": 3}})


class TestSortRows:
    def test_multi_key_and_missing_last(self):
        rows = [
            {"id": "a", "level": 1, "rating": 3.0},
            {"id": "b", "level": 2, "rating": None},
            {"id": "c", "level": 2, "rating": 4.0},
            {"id": "d", "level": 1, "rating": 5.0},
        ]

        result = sort_rows(rows, [("level", -1), ("rating", -1)])

        assert [r["id"] for r in result] == ["c", "b", "d", "a"]

    def test_stable_for_equal_keys(self):
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        rows = [{"id": str(i), "created_at": stamp} for i in range(5)]

        assert [r["id"] for r in sort_rows(rows, [("created_at", 1)])] == ["0", "1", "2", "3", "4"]

    def test_no_order_keeps_rows(self):
        rows = [{"id": "x"}, {"id": "y"}]
        assert sort_rows(rows, None) == rows


class TestMongoTranslation:
    def test_id_becomes_object_id(self):
        oid = ObjectId()

        assert to_mongo_filter({"id": str(oid), "status": "active"}) == {"_id": oid, "status": "active"}
        assert to_mongo_filter({"id": {"$in": [str(oid)]}}) == {"_id": {"$in": [oid]}}
        assert to_mongo_filter(None) == {}

    def test_bad_id_is_validation_failure(self):
        with pytest.raises(ValidationFailed):
            parse_object_id("not-an-id", "service_id")

    def test_serialize_doc(self):
        oid, ref = ObjectId(), ObjectId()

        doc = serialize_doc({"_id": oid, "seller_ref": ref, "title": "Logo"})

        assert doc == {"id": str(oid), "seller_ref": str(ref), "title": "Logo"}


class RecordingCollection:
    def __init__(self, name):
        self.name = name
        self.created = []

    async def create_index(self, keys, **options):
        self.created.append((list(keys), options))


class RecordingDb(dict):
    def __missing__(self, name):
        self[name] = RecordingCollection(name)
        return self[name]


class TestEnsureIndexes:
    async def test_every_table_gets_its_indexes(self):
        db = RecordingDb()
        await ensure_indexes(db)

        assert sum(len(c.created) for c in db.values()) == len(INDEXES)
        email_keys, email_options = db["profiles"].created[0]
        assert email_keys == [("email", 1)]
        assert email_options["unique"] is True
        assert any(o.get("unique") for _, o in db["reviews"].created)
