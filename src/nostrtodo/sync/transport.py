"""
Relay transport interface — how the coordinators reach a relay.

The coordinators only ever see this surface. Each relay task opens
its own session, does one query or one publish, and closes it.
Implementations raise RelayError for anything that goes wrong with
a single relay, and bound every network operation by their own
timeout.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from .records import RecordFilter, RemoteRecord


class PublishAck(BaseModel):
    """A relay's answer to a published record."""

    accepted: bool
    message: str = ""


class RelaySession(ABC):
    """An open connection to a single relay."""

    url: str

    @abstractmethod
    async def query(self, record_filter: RecordFilter) -> Optional[RemoteRecord]:
        """Return the first record the relay holds for the filter.

        Returns:
            The record, or None once the relay signals it has nothing
            (end of stored events or a closed subscription).

        Raises:
            RelayError: On connection loss, timeout, or protocol error.
        """

    @abstractmethod
    async def publish(self, record: RemoteRecord) -> PublishAck:
        """Send a signed record and wait for the relay's verdict.

        Raises:
            RelayError: On connection loss, timeout, or protocol error.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call more than once."""

    async def __aenter__(self) -> RelaySession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class RelayTransport(ABC):
    """Factory for relay sessions."""

    @abstractmethod
    async def connect(self, url: str) -> RelaySession:
        """Open a session to ``url``.

        Raises:
            RelayError: If the relay cannot be reached.
        """
