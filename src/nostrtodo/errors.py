"""
Error taxonomy for nostr-todo.

Everything the engine raises derives from TodoError so the command
line can turn any of them into a single message and a non-zero exit.
RelayError is the odd one out: it describes one relay, and the
coordinators catch it per relay instead of letting it escape.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .sync.commit import CommitReport


class TodoError(Exception):
    """Base class for every nostr-todo failure."""


class ConfigError(TodoError):
    """The configuration file is missing, unreadable, or invalid."""


class NotFoundError(TodoError):
    """No relay holds a list for the requested namespace."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__("todo list not found")


class CorruptRecordError(TodoError):
    """A stored record's body did not parse as a todo list."""


class InvalidCredentialError(TodoError):
    """The private key cannot be decoded or yields no public key."""


class SigningError(TodoError):
    """Signing a record failed."""


class RelayError(TodoError):
    """A single relay could not be reached or misbehaved."""

    def __init__(self, relay: str, reason: str):
        self.relay = relay
        self.reason = reason
        super().__init__(f"{relay}: {reason}")


class QuorumNotReachedError(TodoError):
    """Fewer relays accepted a commit than the configured minimum."""

    def __init__(self, report: "CommitReport", required: int):
        self.report = report
        self.required = required
        super().__init__(
            f"only {report.accepted_count} of {len(report.outcomes)} relay(s) "
            f"accepted the update ({required} required)"
        )


def describe(exc: BaseException, default: Optional[str] = None) -> str:
    """One-line human-readable description of an exception."""
    text = str(exc).strip()
    if text:
        return text
    return default or type(exc).__name__
