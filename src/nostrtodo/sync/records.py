"""
Remote records — the signed Nostr events a list version travels as.

A list is stored as one parameterized replaceable event (kind 30078,
"application-specific data") addressed by its author and its ``d``
tag. Each commit builds a new event; relays keep the newest one.
"""

from __future__ import annotations

import hashlib
import json
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..identity import Credential, verify_signature

KIND_APPLICATION_SPECIFIC_DATA = 30078
NAMESPACE_TAG = "d"


class RemoteRecord(BaseModel):
    """A Nostr event carrying one serialized todo list."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    pubkey: str
    created_at: int
    kind: int = KIND_APPLICATION_SPECIFIC_DATA
    tags: list[list[str]] = Field(default_factory=list)
    content: str = ""
    sig: str = ""

    @property
    def namespace(self) -> Optional[str]:
        """Value of the first ``d`` tag, if any."""
        for tag in self.tags:
            if len(tag) >= 2 and tag[0] == NAMESPACE_TAG:
                return tag[1]
        return None

    def compute_id(self) -> str:
        """sha256 of the NIP-01 canonical serialization, hex-encoded."""
        canonical = json.dumps(
            [0, self.pubkey, self.created_at, self.kind, self.tags, self.content],
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def verify(self) -> bool:
        """True if the id matches the body and the signature matches the id."""
        if not self.id or not self.sig:
            return False
        if self.compute_id() != self.id:
            return False
        return verify_signature(self.pubkey, bytes.fromhex(self.id), self.sig)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()


class RecordFilter(BaseModel):
    """A NIP-01 subscription filter for one namespace."""

    model_config = ConfigDict(frozen=True)

    kinds: list[int] = Field(default_factory=lambda: [KIND_APPLICATION_SPECIFIC_DATA])
    namespaces: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    limit: Optional[int] = 1

    @classmethod
    def for_namespace(cls, namespace: str, author: Optional[str] = None) -> RecordFilter:
        return cls(namespaces=[namespace], authors=[author] if author else [])

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"kinds": list(self.kinds)}
        if self.namespaces:
            wire["#" + NAMESPACE_TAG] = list(self.namespaces)
        if self.authors:
            wire["authors"] = list(self.authors)
        if self.limit is not None:
            wire["limit"] = self.limit
        return wire

    def matches(self, record: RemoteRecord) -> bool:
        """Re-check a relay's answer locally; relays are not trusted."""
        if self.kinds and record.kind not in self.kinds:
            return False
        if self.namespaces and record.namespace not in self.namespaces:
            return False
        if self.authors and record.pubkey not in self.authors:
            return False
        return True


def build_record(
    content: str,
    namespace: str,
    credential: Credential,
    created_at: Optional[int] = None,
) -> RemoteRecord:
    """Assemble and sign a new record for ``namespace``.

    Raises:
        SigningError: If the credential cannot sign.
    """
    unsigned = RemoteRecord(
        pubkey=credential.public_key,
        created_at=int(time.time()) if created_at is None else created_at,
        kind=KIND_APPLICATION_SPECIFIC_DATA,
        tags=[[NAMESPACE_TAG, namespace]],
        content=content,
    )
    record_id = unsigned.compute_id()
    signature = credential.sign(bytes.fromhex(record_id))
    return unsigned.model_copy(update={"id": record_id, "sig": signature})
