"""Shared test fixtures for nostr-todo."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import pytest

from nostrtodo.errors import RelayError
from nostrtodo.identity import Credential, resolve_credential
from nostrtodo.sync.records import RecordFilter, RemoteRecord
from nostrtodo.sync.transport import PublishAck, RelaySession, RelayTransport

TEST_SECRET_HEX = "01" * 32
OTHER_SECRET_HEX = "02" * 32


# ---------------------------------------------------------------------------
# In-memory relays
# ---------------------------------------------------------------------------


class MemoryRelay:
    """A relay that keeps the newest event per (author, kind, d tag).

    Args:
        down: Refuse connections.
        reject: Answer every publish with OK false.
        delay: Seconds to wait before answering a query or publish.
    """

    def __init__(self, down: bool = False, reject: bool = False, delay: float = 0.0):
        self.down = down
        self.reject = reject
        self.delay = delay
        self.events: dict[tuple[str, int, Optional[str]], RemoteRecord] = {}
        self.publish_attempts = 0
        self.queries = 0
        self.cancelled = 0

    def store(self, record: RemoteRecord) -> None:
        key = (record.pubkey, record.kind, record.namespace)
        current = self.events.get(key)
        if current is None or record.created_at >= current.created_at:
            self.events[key] = record

    def find(self, record_filter: RecordFilter) -> Optional[RemoteRecord]:
        wire = record_filter.to_wire()
        for record in self.events.values():
            if record.kind not in wire["kinds"]:
                continue
            if "#d" in wire and record.namespace not in wire["#d"]:
                continue
            if "authors" in wire and record.pubkey not in wire["authors"]:
                continue
            return record
        return None

    async def _pause(self) -> None:
        if not self.delay:
            return
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise


class MemorySession(RelaySession):
    def __init__(self, url: str, relay: MemoryRelay, transport: "MemoryTransport"):
        self.url = url
        self.relay = relay
        self.transport = transport
        self.closed = False

    async def query(self, record_filter: RecordFilter) -> Optional[RemoteRecord]:
        self.relay.queries += 1
        self.transport.filters.append(record_filter)
        await self.relay._pause()
        return self.relay.find(record_filter)

    async def publish(self, record: RemoteRecord) -> PublishAck:
        self.relay.publish_attempts += 1
        await self.relay._pause()
        if self.relay.reject:
            return PublishAck(accepted=False, message="blocked: not allowed")
        self.relay.store(record)
        return PublishAck(accepted=True)

    async def close(self) -> None:
        self.closed = True
        self.transport.open_sessions -= 1


class MemoryTransport(RelayTransport):
    """Routes relay URLs to MemoryRelay instances."""

    def __init__(self, relays: dict[str, MemoryRelay]):
        self.relays = relays
        self.connects: list[str] = []
        self.filters: list[RecordFilter] = []
        self.open_sessions = 0

    async def connect(self, url: str) -> RelaySession:
        self.connects.append(url)
        relay = self.relays.get(url)
        if relay is None or relay.down:
            raise RelayError(url, "connection failed: connection refused")
        self.open_sessions += 1
        return MemorySession(url, relay, self)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def credential() -> Credential:
    """The owner's signing credential."""
    return resolve_credential(TEST_SECRET_HEX)


@pytest.fixture
def other_credential() -> Credential:
    """Someone else's signing credential."""
    return resolve_credential(OTHER_SECRET_HEX)


@pytest.fixture
def relays() -> dict[str, MemoryRelay]:
    """Three healthy relays."""
    return {
        "wss://relay-a.test": MemoryRelay(),
        "wss://relay-b.test": MemoryRelay(),
        "wss://relay-c.test": MemoryRelay(),
    }


@pytest.fixture
def transport(relays: dict[str, MemoryRelay]) -> MemoryTransport:
    """In-memory transport over the ``relays`` fixture."""
    return MemoryTransport(relays)


@pytest.fixture
def config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A config directory with a default profile pointing at the test relays."""
    home = tmp_path / "nostr-todo"
    home.mkdir()
    (home / "config.json").write_text(
        json.dumps({
            "relays": ["wss://relay-a.test", "wss://relay-b.test", "wss://relay-c.test"],
            "privatekey": TEST_SECRET_HEX,
        })
    )
    monkeypatch.setenv("NOSTR_TODO_HOME", str(home))
    return home
