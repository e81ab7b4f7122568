"""
Tests for the shared MongoDB client lifecycle
"""
import threading

import mongomock

import database
from config import parse_cors_origins
from logging_config import JSONFormatter, get_logger


class TestClientLifecycle:
    def setup_method(self):
        database.close_database()

    def teardown_method(self):
        database.close_database()

    def test_init_is_idempotent(self):
        first = database.init_database(mongomock.MongoClient())
        second = database.init_database(mongomock.MongoClient())

        assert first is second
        assert database.get_client() is first

    def test_concurrent_first_use_creates_one_client(self, monkeypatch):
        created = []

        def counting_client(*args, **kwargs):
            client = mongomock.MongoClient()
            created.append(client)
            return client

        monkeypatch.setattr(database, "MongoClient", counting_client)
        results = []
        threads = [threading.Thread(target=lambda: results.append(database.get_client())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 1
        assert all(r is created[0] for r in results)

    def test_close_resets_client(self):
        first = database.init_database(mongomock.MongoClient())
        database.close_database()
        second = database.init_database(mongomock.MongoClient())

        assert first is not second

    def test_unique_indexes_created(self):
        database.init_database(mongomock.MongoClient())

        index_info = database.get_db()["department"].index_information()
        unique_keys = {info["key"][0][0] for info in index_info.values() if info.get("unique")}

        assert {"cnic", "email", "CoordinatorEmail", "focalPersonEmail"} <= unique_keys

    def test_create_and_get_documents(self):
        database.init_database(mongomock.MongoClient())

        inserted_id = database.create_document("university", {"name": "UET", "location": None})
        docs = database.get_documents("university", {"name": "UET"})

        assert str(docs[0]["_id"]) == inserted_id
        assert "location" not in docs[0]
        assert "created_at" in docs[0]


class TestConfigAndLogging:
    def test_parse_cors_origins(self):
        assert parse_cors_origins("http://a.com, http://b.com") == ["http://a.com", "http://b.com"]
        assert parse_cors_origins('["http://a.com"]') == ["http://a.com"]
        assert parse_cors_origins(None) == []

    def test_json_formatter_includes_extra_fields(self):
        import json
        import logging

        record = logging.LogRecord("internship_portal.test", logging.INFO, __file__, 1,
                                   "completed %s", ("x",), None)
        record.internship_id = "abc"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "completed x"
        assert data["internship_id"] == "abc"

    def test_child_logger_name(self):
        assert get_logger("services").name == "internship_portal.services"
