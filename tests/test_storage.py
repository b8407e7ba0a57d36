"""
Tests for storage backends.

The API backend runs against a stub session; no real HTTP calls are made.
"""

import asyncio
import json
from uuid import uuid4

import pytest
import requests

from entry_wizard.models import AuditEventBuilder, EntryKind
from entry_wizard.services.storage import (
    ApiEntryStorage,
    ConnectionError,
    InMemoryAuditStorage,
    InMemoryEntryStorage,
    NotFoundError,
    StorageError,
)


def _response(status_code, body=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode() if body is not None else b""
    response.url = "http://api.test"
    return response


class StubSession:
    """Replays queued responses (or raises queued exceptions)."""

    def __init__(self, *results):
        self._results = list(results)
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "headers": headers})
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _storage(session, **kwargs):
    return ApiEntryStorage(
        base_url="http://api.test/api/",
        session=session,
        retry_wait_seconds=0,
        **kwargs,
    )


class TestInMemoryEntryStorage:
    """Tests for the in-memory backend."""

    def test_create_assigns_ids(self):
        storage = InMemoryEntryStorage()
        first = asyncio.run(storage.save(EntryKind.INCOME, {"amount": 1.0}))
        second = asyncio.run(storage.save(EntryKind.INCOME, {"amount": 2.0}))
        assert first["id"] == 1
        assert second["id"] == 2
        assert len(storage.list_records(EntryKind.INCOME)) == 2

    def test_update_existing(self):
        storage = InMemoryEntryStorage()
        created = asyncio.run(storage.save(EntryKind.ASSET, {"name": "Car"}))
        asyncio.run(storage.save(EntryKind.ASSET, {"name": "Bike"}, created["id"]))
        assert storage.get(EntryKind.ASSET, created["id"])["name"] == "Bike"

    def test_update_missing_raises(self):
        storage = InMemoryEntryStorage()
        with pytest.raises(NotFoundError):
            asyncio.run(storage.save(EntryKind.EXPENSE, {}, 99))

    def test_stored_copy_is_independent(self):
        storage = InMemoryEntryStorage()
        payload = {"metadata": {"a": 1}}
        created = asyncio.run(storage.save(EntryKind.EXPENSE, payload))
        payload["metadata"]["a"] = 2
        assert storage.get(EntryKind.EXPENSE, created["id"])["metadata"] == {"a": 1}


class TestInMemoryAuditStorage:
    """Tests for the in-memory audit log."""

    def test_events_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        storage.append_event(AuditEventBuilder.submit_started("income", uuid4(), correlation_id))
        storage.append_event(AuditEventBuilder.submit_started("income", uuid4(), uuid4()))
        assert len(storage.get_events_by_correlation_id(correlation_id)) == 1

    def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.submit_started("income", uuid4(), None)
        second = AuditEventBuilder.submit_started("expense", uuid4(), None)
        storage.append_event(first)
        storage.append_event(second)
        assert storage.get_recent_events(limit=1) == [second]


class TestApiEntryStorage:
    """Tests for the HTTP backend."""

    def test_create_posts_to_resource(self):
        session = StubSession(_response(201, {"id": 7, "amount": 100.5}))
        result = asyncio.run(_storage(session).save(EntryKind.INCOME, {"amount": 100.5}))

        assert result == {"id": 7, "amount": 100.5}
        assert session.calls[0]["method"] == "POST"
        assert session.calls[0]["url"] == "http://api.test/api/income"
        assert session.calls[0]["json"] == {"amount": 100.5}

    def test_update_puts_to_record(self):
        session = StubSession(_response(200, {"data": {"id": 3}}))
        result = asyncio.run(_storage(session).save(EntryKind.EXPENSE, {}, 3))

        assert result == {"id": 3}
        assert session.calls[0]["method"] == "PUT"
        assert session.calls[0]["url"] == "http://api.test/api/expenses/3"

    def test_auth_header(self):
        session = StubSession(_response(201, {}))
        asyncio.run(_storage(session, auth_token="secret").save(EntryKind.ASSET, {}))
        assert session.calls[0]["headers"]["Authorization"] == "Bearer secret"

    def test_server_error_message_surfaces(self):
        session = StubSession(_response(400, {"error": "Invalid category"}))
        with pytest.raises(StorageError, match="Invalid category"):
            asyncio.run(_storage(session).save(EntryKind.INCOME, {}))
        # HTTP errors are not retried
        assert len(session.calls) == 1

    def test_error_without_body(self):
        session = StubSession(_response(500))
        with pytest.raises(StorageError, match="status 500"):
            asyncio.run(_storage(session).save(EntryKind.INCOME, {}))

    def test_not_found(self):
        session = StubSession(_response(404, {"error": "Income not found"}))
        with pytest.raises(NotFoundError):
            asyncio.run(_storage(session).save(EntryKind.INCOME, {}, 9))

    def test_connection_errors_retried(self):
        session = StubSession(
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.Timeout("slow"),
            _response(201, {"id": 1}),
        )
        result = asyncio.run(_storage(session, max_retries=3).save(EntryKind.ASSET, {}))
        assert result == {"id": 1}
        assert len(session.calls) == 3

    def test_connection_errors_give_up(self):
        session = StubSession(
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.ConnectionError("refused"),
        )
        with pytest.raises(ConnectionError, match="Could not reach the server"):
            asyncio.run(_storage(session, max_retries=2).save(EntryKind.ASSET, {}))
        assert len(session.calls) == 2
