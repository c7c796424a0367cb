"""
Commit coordinator — sign one new version and push it everywhere.

    serialize -> build record -> sign -> fan out to every relay -> join

Each relay gets its own task and its own connection. A relay that
refuses, times out, or cannot be reached is logged and recorded in
the report; it never stops the other relays. The coordinator returns
only after every attempt has finished.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from ..errors import QuorumNotReachedError, RelayError, describe
from ..identity import Credential
from ..models import TodoList
from .records import RemoteRecord, build_record
from .transport import RelayTransport

logger = logging.getLogger("nostrtodo.sync.commit")


class PublishOutcome(BaseModel):
    """What happened when one relay was offered the record."""

    relay: str
    accepted: bool = False
    message: str = ""
    error: Optional[str] = None


class CommitReport(BaseModel):
    """Result of one fan-out: the record sent and every relay's outcome."""

    record_id: str
    namespace: str
    created_at: int
    outcomes: list[PublishOutcome] = Field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return sum(1 for o in self.outcomes if o.accepted)

    @property
    def accepted(self) -> list[str]:
        return [o.relay for o in self.outcomes if o.accepted]

    @property
    def failed(self) -> list[PublishOutcome]:
        return [o for o in self.outcomes if not o.accepted]


class CommitCoordinator:
    """Best-effort writer with an optional acceptance threshold.

    Args:
        transport: Opens one session per relay.
        min_acceptances: Relays that must accept before the commit counts
            as successful. 0 reports success whatever the relays said.
    """

    def __init__(self, transport: RelayTransport, min_acceptances: int = 0) -> None:
        if min_acceptances < 0:
            raise ValueError("min_acceptances must be >= 0")
        self._transport = transport
        self.min_acceptances = min_acceptances

    async def commit(
        self,
        todolist: TodoList,
        relays: Sequence[str],
        credential: Credential,
        namespace: str,
    ) -> CommitReport:
        """Publish ``todolist`` as the new version of ``namespace``.

        Args:
            todolist: The mutated list.
            relays: Relay URLs to publish to.
            credential: Signing key of the list owner.
            namespace: Namespace key (``d`` tag) of the list.

        Returns:
            CommitReport: One outcome per relay.

        Raises:
            SigningError: If the record cannot be signed. Nothing is sent.
            QuorumNotReachedError: If fewer than ``min_acceptances`` relays
                accepted. Raised only after every attempt has finished.
        """
        record = build_record(todolist.serialize(), namespace, credential)
        outcomes = await self.publish(record, relays)

        report = CommitReport(
            record_id=record.id,
            namespace=namespace,
            created_at=record.created_at,
            outcomes=outcomes,
        )
        logger.info(
            "Committed %s to %d/%d relay(s)",
            record.id[:12], report.accepted_count, len(outcomes),
        )
        if report.accepted_count < self.min_acceptances:
            raise QuorumNotReachedError(report, self.min_acceptances)
        return report

    async def publish(
        self, record: RemoteRecord, relays: Sequence[str]
    ) -> list[PublishOutcome]:
        """Fan a signed record out to every relay and join.

        Cancelling the caller cancels every in-flight attempt; relays that
        already accepted the record keep it.
        """
        attempts = [self._publish_one(url, record) for url in dict.fromkeys(relays)]
        return list(await asyncio.gather(*attempts))

    async def _publish_one(self, url: str, record: RemoteRecord) -> PublishOutcome:
        try:
            async with await self._transport.connect(url) as session:
                ack = await session.publish(record)
        except RelayError as exc:
            logger.warning("Publish failed on %s", describe(exc))
            return PublishOutcome(relay=url, error=exc.reason)

        if not ack.accepted:
            logger.warning("%s rejected %s: %s", url, record.id[:12], ack.message)
        else:
            logger.info("%s accepted %s", url, record.id[:12])
        return PublishOutcome(relay=url, accepted=ack.accepted, message=ack.message)
