# proposals_node/runtime/ids.py
from __future__ import annotations

import threading
from typing import Optional

from .types import ProposalId

INITIAL_PROPOSAL_ID: ProposalId = 0


class ProposalIdAllocator:
    """
    Hands out proposal ids in strictly increasing order.

    `next_value` is None until the first allocation, matching an empty
    chain where no NextProposalId has been stored yet.
    """

    def __init__(
        self,
        initial_value: ProposalId = INITIAL_PROPOSAL_ID,
        next_value: Optional[ProposalId] = None,
    ) -> None:
        self.initial_value = int(initial_value)
        self._next: Optional[ProposalId] = None if next_value is None else int(next_value)
        self._lock = threading.Lock()

    def peek(self) -> ProposalId:
        with self._lock:
            return self.initial_value if self._next is None else self._next

    def next_id(self) -> ProposalId:
        with self._lock:
            pid = self.initial_value if self._next is None else self._next
            self._next = pid + 1
            return pid

    def restore(self, next_value: Optional[ProposalId]) -> None:
        with self._lock:
            self._next = None if next_value is None else int(next_value)

    def snapshot(self) -> Optional[ProposalId]:
        with self._lock:
            return self._next
