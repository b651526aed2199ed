# proposals_node/runtime/__init__.py
from __future__ import annotations

"""
Proposals runtime package.

Nothing here imports FastAPI or touches disk at import time; the node and
the API layer build on these pieces.
"""

from .clock import BlockClock
from .errors import DispatchError
from .events import EventLog
from .ids import ProposalIdAllocator
from .proposals import ProposalsRuntime
from .store import ProposalStore, VoteLedger
from .types import (
    CHOICE_NO,
    CHOICE_YES,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    Proposal,
    Vote,
)

__all__ = [
    "BlockClock",
    "DispatchError",
    "EventLog",
    "ProposalIdAllocator",
    "ProposalsRuntime",
    "ProposalStore",
    "VoteLedger",
    "Proposal",
    "Vote",
    "CHOICE_YES",
    "CHOICE_NO",
    "STATUS_PENDING",
    "STATUS_ACCEPTED",
    "STATUS_REJECTED",
]
