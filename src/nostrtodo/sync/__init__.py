"""
Relay sync -- keep one todo list consistent across Nostr relays.

Reads race every relay and take the first verified answer. Writes sign
one new event and push it to every relay at once, tolerating any that
fail. No relay is trusted and none coordinates the others.
"""

from .commit import CommitCoordinator, CommitReport, PublishOutcome
from .engine import SyncEngine
from .fetch import FetchCoordinator

__all__ = [
    "CommitCoordinator",
    "CommitReport",
    "FetchCoordinator",
    "PublishOutcome",
    "SyncEngine",
]
