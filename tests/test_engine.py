"""Tests for full fetch -> mutate -> commit cycles."""

from __future__ import annotations

import pytest

from nostrtodo.config import TodoConfig
from nostrtodo.errors import InvalidCredentialError, NotFoundError
from nostrtodo.identity import Credential
from nostrtodo.mutations import add_task, delete_tasks, mark_done
from nostrtodo.sync.engine import SyncEngine
from nostrtodo.sync.records import build_record
from nostrtodo.sync.websocket import WebSocketTransport

from conftest import TEST_SECRET_HEX, MemoryRelay, MemoryTransport

RELAYS = ["wss://relay-a.test", "wss://relay-b.test", "wss://relay-c.test"]


def _config(**overrides) -> TodoConfig:
    data = {"relays": RELAYS, "privatekey": TEST_SECRET_HEX}
    data.update(overrides)
    return TodoConfig(**data)


class TestScenarios:
    """End-to-end scenarios over in-memory relays."""

    @pytest.mark.asyncio
    async def test_add_to_new_list_with_one_relay_down(self):
        """'work' starts empty, gets one task, and reads back from the healthy relays."""
        relays = {
            "wss://relay-a.test": MemoryRelay(),
            "wss://relay-b.test": MemoryRelay(),
            "wss://relay-c.test": MemoryRelay(down=True),
        }
        engine = SyncEngine(_config(), transport=MemoryTransport(relays))

        todolist, report = await engine.apply(
            lambda tl: add_task(tl, "buy milk"), "work", allow_missing=True
        )
        assert [(t.content, t.done) for t in todolist.tasks] == [("buy milk", False)]
        assert report.accepted_count == 2
        assert report.namespace == "nostr-todo-work"

        healthy = {url: r for url, r in relays.items() if not r.down}
        reader = SyncEngine(
            _config(relays=list(healthy)), transport=MemoryTransport(healthy)
        )
        assert await reader.load("work") == todolist

    @pytest.mark.asyncio
    async def test_mark_done_cycle(self, relays, transport):
        """MarkDone([A]) on [A, B] is committed and reloaded."""
        engine = SyncEngine(_config(), transport=transport)
        await engine.apply(lambda tl: add_task(tl, "A", now=1, task_id="A"), allow_missing=True)
        await engine.apply(lambda tl: add_task(tl, "B", now=2, task_id="B"))

        await engine.apply(lambda tl: mark_done(tl, ["A"]))

        reloaded = await engine.load()
        assert [(t.id, t.done) for t in reloaded.tasks] == [("A", True), ("B", False)]

    @pytest.mark.asyncio
    async def test_delete_sweeps_empty_ids(self, relays, transport, credential: Credential):
        """Delete([A]) on [A, <empty id>] commits an empty list."""
        body = '[{"id":"A","content":"a","done":false,"created_at":1},' \
               '{"id":"","content":"orphan","done":false,"created_at":2}]'
        relays["wss://relay-a.test"].store(build_record(body, "nostr-todo", credential, created_at=1))

        todolist, _ = await SyncEngine(_config(), transport=transport).apply(
            lambda tl: delete_tasks(tl, ["A"])
        )
        assert len(todolist) == 0
        for relay in relays.values():
            assert relay.find(transport.filters[0]).content == "[]"


class TestEngine:
    """Tests for engine policy."""

    @pytest.mark.asyncio
    async def test_missing_list_fails_without_allow_missing(self, transport):
        """Only Add may start from an empty list."""
        engine = SyncEngine(_config(), transport=transport)
        with pytest.raises(NotFoundError):
            await engine.apply(lambda tl: mark_done(tl, ["A"]))
        assert transport.relays["wss://relay-a.test"].publish_attempts == 0

    @pytest.mark.asyncio
    async def test_invalid_key_fails_before_any_write(self, transport):
        """An unusable key aborts the command with nothing sent."""
        engine = SyncEngine(_config(privatekey="nsec1garbage"), transport=transport)
        with pytest.raises(InvalidCredentialError):
            await engine.apply(lambda tl: add_task(tl, "x"), allow_missing=True)
        assert all(r.publish_attempts == 0 for r in transport.relays.values())

    @pytest.mark.asyncio
    async def test_load_scoped_to_own_key(self, transport, credential: Credential):
        """Queries carry the configured author."""
        with pytest.raises(NotFoundError):
            await SyncEngine(_config(), transport=transport).load()
        assert transport.filters[0].authors == [credential.public_key]

    @pytest.mark.asyncio
    async def test_load_without_key_is_unscoped(self, transport):
        """Without a key the query is by namespace only."""
        with pytest.raises(NotFoundError):
            await SyncEngine(_config(privatekey=""), transport=transport).load()
        assert transport.filters[0].authors == []

    @pytest.mark.asyncio
    async def test_load_with_unusable_key_is_unscoped(self, relays, transport,
                                                      credential: Credential, caplog):
        """A malformed key does not block reads; the query drops the author."""
        relays["wss://relay-a.test"].store(build_record("[]", "nostr-todo", credential))
        engine = SyncEngine(_config(privatekey="nsec1garbage"), transport=transport)

        with caplog.at_level("WARNING", logger="nostrtodo.sync.engine"):
            todolist = await engine.load()
        assert len(todolist) == 0
        assert transport.filters[0].authors == []
        assert "unusable private key" in caplog.text

    def test_default_transport(self):
        """Without an override the WebSocket transport is used with the configured timeout."""
        engine = SyncEngine(_config(timeout=3.0))
        assert isinstance(engine.transport, WebSocketTransport)
        assert engine.transport.timeout == 3.0

    def test_quorum_from_config(self, transport):
        """min_acceptances flows into the commit coordinator."""
        assert SyncEngine(_config(min_acceptances=2), transport=transport).committer.min_acceptances == 2
