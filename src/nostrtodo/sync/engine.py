"""
Sync engine — one read-modify-write cycle against the relay set.

    load   ->  fetch from relays (first answer wins)
    apply  ->  load -> pure mutation -> commit to every relay
    save   ->  sign -> fan out -> join

The engine is built per command from an explicit TodoConfig and
holds nothing across commands.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..config import TodoConfig
from ..errors import InvalidCredentialError, NotFoundError
from ..identity import Credential, resolve_credential
from ..models import TodoList, namespace_key
from .commit import CommitCoordinator, CommitReport
from .fetch import FetchCoordinator
from .transport import RelayTransport
from .websocket import WebSocketTransport

logger = logging.getLogger("nostrtodo.sync.engine")

Mutation = Callable[[TodoList], TodoList]


class SyncEngine:
    """Load, mutate, and commit a todo list on the configured relays.

    Args:
        config: Relays, key material, and commit policy.
        transport: Relay transport. Defaults to WebSocketTransport
            with the configured timeout.
    """

    def __init__(
        self,
        config: TodoConfig,
        transport: Optional[RelayTransport] = None,
    ) -> None:
        self.config = config
        self.transport = transport or WebSocketTransport(timeout=config.timeout)
        self.fetcher = FetchCoordinator(self.transport)
        self.committer = CommitCoordinator(
            self.transport, min_acceptances=config.min_acceptances
        )
        self._credential: Optional[Credential] = None

    @property
    def credential(self) -> Credential:
        """The signing credential, decoded on first use.

        Raises:
            InvalidCredentialError: If the configured key is unusable.
        """
        if self._credential is None:
            self._credential = resolve_credential(self.config.private_key)
        return self._credential

    def _author(self) -> Optional[str]:
        # Without a key anyone's list under the namespace would match.
        if not self.config.private_key:
            return None
        try:
            return self.credential.public_key
        except InvalidCredentialError as exc:
            # Reading needs no key; writing still fails on it in save().
            logger.warning("Ignoring unusable private key for reads: %s", exc)
            return None

    async def load(self, name: str = "") -> TodoList:
        """Fetch the list called ``name``.

        Raises:
            NotFoundError: If no relay holds it.
            CorruptRecordError: If the stored body does not parse.
        """
        return await self.fetcher.fetch(
            self.config.relays, namespace_key(name), author=self._author()
        )

    async def save(self, todolist: TodoList, name: str = "") -> CommitReport:
        """Commit ``todolist`` as the new version of the list called ``name``.

        Raises:
            InvalidCredentialError: If the configured key is unusable.
            SigningError: If signing fails.
            QuorumNotReachedError: If the acceptance threshold is missed.
        """
        report = await self.committer.commit(
            todolist, self.config.relays, self.credential, namespace_key(name)
        )
        for outcome in report.failed:
            logger.debug("Not stored on %s: %s", outcome.relay, outcome.error or outcome.message)
        return report

    async def apply(
        self,
        mutate: Mutation,
        name: str = "",
        allow_missing: bool = False,
    ) -> tuple[TodoList, CommitReport]:
        """Run one fetch -> mutate -> commit cycle.

        Args:
            mutate: Pure transform applied to the loaded list.
            name: List name.
            allow_missing: Start from an empty list when none is stored
                yet, instead of raising NotFoundError.

        Returns:
            The committed list and the commit report.
        """
        try:
            current = await self.load(name)
        except NotFoundError:
            if not allow_missing:
                raise
            logger.info("No list %r yet, starting a new one", namespace_key(name))
            current = TodoList()

        updated = mutate(current)
        report = await self.save(updated, name)
        return updated, report
