"""
Fetch coordinator — load the current list from whichever relay answers.

Every relay is queried at once. The first relay to hand back a record
that passes local checks wins and the other queries are cancelled.
Relays that disagree are not detected; relays that fail or return a
forged record simply count as having nothing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..errors import NotFoundError, RelayError, describe
from ..models import TodoList
from .records import RecordFilter, RemoteRecord
from .transport import RelayTransport

logger = logging.getLogger("nostrtodo.sync.fetch")


class FetchCoordinator:
    """First-response-wins reader over a set of relays.

    Args:
        transport: Opens one session per relay.
    """

    def __init__(self, transport: RelayTransport) -> None:
        self._transport = transport

    async def fetch_record(
        self,
        relays: Sequence[str],
        namespace: str,
        author: Optional[str] = None,
    ) -> RemoteRecord:
        """Race all relays for the stored record of ``namespace``.

        Args:
            relays: Relay URLs to query.
            namespace: Namespace key (``d`` tag) of the list.
            author: Hex public key to restrict the query to, if known.

        Returns:
            RemoteRecord: The first verified, matching record.

        Raises:
            NotFoundError: If no relay returns a matching record.
        """
        record_filter = RecordFilter.for_namespace(namespace, author)
        tasks = [
            asyncio.ensure_future(self._query_one(url, record_filter))
            for url in dict.fromkeys(relays)
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                record = await next_done
                if record is not None:
                    return record
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info("No relay holds %s", namespace)
        raise NotFoundError(namespace)

    async def fetch(
        self,
        relays: Sequence[str],
        namespace: str,
        author: Optional[str] = None,
    ) -> TodoList:
        """Load the list stored under ``namespace``.

        Raises:
            NotFoundError: If no relay holds the list.
            CorruptRecordError: If the stored body is not a todo list.
        """
        record = await self.fetch_record(relays, namespace, author)
        return TodoList.deserialize(record.content)

    async def _query_one(
        self, url: str, record_filter: RecordFilter
    ) -> Optional[RemoteRecord]:
        try:
            async with await self._transport.connect(url) as session:
                record = await session.query(record_filter)
        except RelayError as exc:
            logger.warning("Query failed on %s", describe(exc))
            return None

        if record is None:
            logger.debug("%s has no matching record", url)
            return None
        if not record_filter.matches(record):
            logger.warning("%s returned a record outside the filter, ignoring", url)
            return None
        if not record.verify():
            logger.warning("%s returned a record with a bad signature, ignoring", url)
            return None

        logger.info("Fetched %s from %s", record.id[:12], url)
        return record
