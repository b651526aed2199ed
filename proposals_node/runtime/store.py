# proposals_node/runtime/store.py
from __future__ import annotations

"""
In-memory storage maps for proposals and votes.

    ProposalStore: proposal_id -> Proposal
    VoteLedger:    proposal_id -> [Vote, ...]   (voters unique per entry)

Both hand out copies so callers can never edit stored records behind the
store's back; the only write paths are insert/mutate and append.
"""

import threading
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple

from .errors import AlreadyVoted, ProposalDoesNotExist, StoreConsistencyError, VoteDoesNotExist
from .types import AccountId, Proposal, ProposalId, Vote


class ProposalStore:
    def __init__(self) -> None:
        self._items: Dict[ProposalId, Proposal] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._items

    def insert(self, proposal_id: ProposalId, proposal: Proposal) -> None:
        with self._lock:
            if proposal_id in self._items:
                raise StoreConsistencyError(f"proposal id {proposal_id} already stored")
            self._items[proposal_id] = replace(proposal)

    def get(self, proposal_id: ProposalId) -> Optional[Proposal]:
        with self._lock:
            p = self._items.get(proposal_id)
            return replace(p) if p is not None else None

    def mutate(self, proposal_id: ProposalId, f: Callable[[Proposal], None]) -> Proposal:
        """
        Apply `f` to a working copy and write it back only if `f` returns.

        Raises ProposalDoesNotExist when the id is unknown; anything `f`
        raises propagates and leaves the stored record untouched.
        """
        with self._lock:
            current = self._items.get(proposal_id)
            if current is None:
                raise ProposalDoesNotExist()
            working = replace(current)
            f(working)
            self._items[proposal_id] = working
            return replace(working)

    def items(self) -> List[Tuple[ProposalId, Proposal]]:
        with self._lock:
            return [(pid, replace(p)) for pid, p in sorted(self._items.items())]

    def load(self, proposals: List[Proposal]) -> None:
        with self._lock:
            self._items = {p.id: replace(p) for p in proposals}


class VoteLedger:
    def __init__(self) -> None:
        self._entries: Dict[ProposalId, List[Vote]] = {}
        self._lock = threading.RLock()

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._entries

    def append(self, proposal_id: ProposalId, vote: Vote) -> None:
        with self._lock:
            votes = self._entries.get(proposal_id)
            if votes is None:
                self._entries[proposal_id] = [vote]
                return
            if any(v.voter == vote.voter for v in votes):
                raise AlreadyVoted()
            votes.append(vote)

    def get(self, proposal_id: ProposalId) -> Optional[List[Vote]]:
        with self._lock:
            votes = self._entries.get(proposal_id)
            return list(votes) if votes is not None else None

    def require(self, proposal_id: ProposalId) -> List[Vote]:
        votes = self.get(proposal_id)
        if votes is None:
            raise VoteDoesNotExist()
        return votes

    def vote_of(self, proposal_id: ProposalId, voter: AccountId) -> Vote:
        for vote in self.require(proposal_id):
            if vote.voter == voter:
                return vote
        raise VoteDoesNotExist()

    def items(self) -> List[Tuple[ProposalId, List[Vote]]]:
        with self._lock:
            return [(pid, list(v)) for pid, v in sorted(self._entries.items())]

    def load(self, entries: Dict[ProposalId, List[Vote]]) -> None:
        with self._lock:
            self._entries = {int(pid): list(votes) for pid, votes in entries.items()}
