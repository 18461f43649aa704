"""
Identifier generation

Two kinds of identifiers exist in the system:
- Proposal ids: small, 1-based, strictly increasing integers that are never
  reused. They advance only when a creation is committed, so a failed
  creation can never burn an id.
- Event and command ids: opaque, globally unique strings.
"""

import secrets
import time

ORGANIZATION_STREAM = "organization"


def generate_id() -> str:
    """
    Generate a sortable unique identifier

    Format: 12 hex chars of millisecond timestamp, a dash, then 20 hex
    chars of randomness. Ids generated later sort after earlier ones at
    millisecond resolution.

    Returns:
        Identifier string (e.g., "01908e9a3b87-5f0c2d1e9a7b34c8e6d1")
    """
    timestamp_ms = int(time.time() * 1000) & 0xFFFFFFFFFFFF
    return f"{timestamp_ms:012x}-{secrets.token_hex(10)}"


def proposal_stream_id(proposal_id: int) -> str:
    """Stream holding one proposal's history"""
    return f"proposal-{proposal_id}"


class ProposalIdAllocator:
    """
    Monotonic 1-based proposal id allocator

    The allocator only advances when a ProposalCreated event is applied,
    never when an id is merely peeked at by a handler.
    """

    def __init__(self) -> None:
        self._last = 0

    def peek(self) -> int:
        """Id the next successful creation will receive"""
        return self._last + 1

    def observe(self, proposal_id: int) -> None:
        """Record that ``proposal_id`` has been allocated"""
        if proposal_id > self._last:
            self._last = proposal_id
