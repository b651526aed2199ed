# proposals_node/runtime/proposals.py
from __future__ import annotations

"""
ProposalsRuntime: the proposal / vote state machine and its resolution sweep.

Lifecycle
---------
    create_proposal  -> new "pending" proposal, fresh id
    update_proposal  -> proposer edits name/description while still open
    cast_vote        -> one vote per account while still open
    resolve          -> every pending proposal whose deadline has passed
                        becomes "accepted" (yes > no) or "rejected"

A proposal is open while `deadline > current_block` and it is pending.
It is due for resolution once `deadline < current_block`. At exactly
`current_block == deadline` it is neither: votes are refused and the
sweep waits one more block.

Public operations never raise dispatch errors. They validate everything
up front and return {"ok": True, ...} or {"ok": False, "error": code}.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from .clock import BlockClock
from .errors import (
    BadDescription,
    BadName,
    DispatchError,
    InvalidChoice,
    InvalidDuration,
    NotAllowed,
    ProposalDoesNotExist,
    ProposalExpired,
    as_result,
    ensure,
    ok,
)
from .events import EVENT_CREATED, EVENT_UPDATED, EVENT_VOTED, EventLog
from .ids import INITIAL_PROPOSAL_ID, ProposalIdAllocator
from .store import ProposalStore, VoteLedger
from .types import (
    CHOICE_NO,
    CHOICE_YES,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    VALID_CHOICES,
    AccountId,
    BlockNumber,
    Proposal,
    ProposalId,
    Vote,
)

log = logging.getLogger(__name__)

DEFAULT_NAME_LIMIT = 50
DEFAULT_DESCRIPTION_LIMIT = 250

Result = Dict[str, Any]


def count_votes(votes: List[Vote]) -> Dict[str, int]:
    yes = sum(1 for v in votes if v.choice == CHOICE_YES)
    no = sum(1 for v in votes if v.choice == CHOICE_NO)
    return {CHOICE_YES: yes, CHOICE_NO: no}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def outcome(votes: List[Vote]) -> str:
    counts = count_votes(votes)
    if counts[CHOICE_YES] > counts[CHOICE_NO]:
        return STATUS_ACCEPTED
    return STATUS_REJECTED


class ProposalsRuntime:
    def __init__(
        self,
        clock: BlockClock,
        *,
        allocator: Optional[ProposalIdAllocator] = None,
        proposals: Optional[ProposalStore] = None,
        votes: Optional[VoteLedger] = None,
        events: Optional[EventLog] = None,
        name_limit: int = DEFAULT_NAME_LIMIT,
        description_limit: int = DEFAULT_DESCRIPTION_LIMIT,
    ) -> None:
        self.clock = clock
        self.allocator = allocator if allocator is not None else ProposalIdAllocator(INITIAL_PROPOSAL_ID)
        self.proposals = proposals if proposals is not None else ProposalStore()
        self.votes = votes if votes is not None else VoteLedger()
        self.events = events if events is not None else EventLog()
        self.name_limit = int(name_limit)
        self.description_limit = int(description_limit)
        self._lock = threading.RLock()

    # ------------------------
    # Validation helpers
    # ------------------------
    def _check_text(self, name: str, description: str) -> None:
        ensure(isinstance(name, str) and len(name.encode("utf-8")) <= self.name_limit, BadName)
        ensure(
            isinstance(description, str) and len(description.encode("utf-8")) <= self.description_limit,
            BadDescription,
        )

    # ------------------------
    # Dispatchables
    # ------------------------
    def create_proposal(
        self, proposer: AccountId, name: str, description: str, deadline: BlockNumber
    ) -> Result:
        def _create() -> Result:
            self._check_text(name, description)
            now = self.clock.current()
            ensure(_is_int(deadline) and deadline > now, InvalidDuration)

            pid = self.allocator.next_id()
            self.proposals.insert(
                pid,
                Proposal(
                    id=pid,
                    proposer=proposer,
                    name=name,
                    description=description,
                    deadline=deadline,
                    status=STATUS_PENDING,
                ),
            )
            self.events.deposit(EVENT_CREATED, pid, now)
            return ok(proposal_id=pid)

        with self._lock:
            return as_result(_create)

    def update_proposal(
        self, caller: AccountId, proposal_id: ProposalId, name: str, description: str
    ) -> Result:
        def _update() -> Result:
            self._check_text(name, description)
            ensure(_is_int(proposal_id), ProposalDoesNotExist)
            now = self.clock.current()

            def _apply(proposal: Proposal) -> None:
                ensure(proposal.proposer == caller, NotAllowed)
                ensure(proposal.deadline > now, ProposalExpired)
                ensure(proposal.status == STATUS_PENDING, ProposalExpired)
                proposal.name = name
                proposal.description = description

            self.proposals.mutate(proposal_id, _apply)
            self.events.deposit(EVENT_UPDATED, proposal_id, now)
            return ok(proposal_id=proposal_id)

        with self._lock:
            return as_result(_update)

    def cast_vote(self, caller: AccountId, proposal_id: ProposalId, choice: str) -> Result:
        def _vote() -> Result:
            ensure(isinstance(choice, str) and choice in VALID_CHOICES, InvalidChoice)
            ensure(_is_int(proposal_id), ProposalDoesNotExist)
            proposal = self.proposals.get(proposal_id)
            ensure(proposal is not None, ProposalDoesNotExist)
            now = self.clock.current()
            ensure(proposal.is_open_at(now), ProposalExpired)

            self.votes.append(proposal_id, Vote(voter=caller, choice=choice))
            self.events.deposit(EVENT_VOTED, proposal_id, now)
            return ok(proposal_id=proposal_id)

        with self._lock:
            return as_result(_vote)

    # ------------------------
    # Resolution sweep
    # ------------------------
    def _resolve_one(self, proposal_id: ProposalId, now: BlockNumber) -> str:
        def _apply(proposal: Proposal) -> None:
            if not proposal.is_due_at(now):
                raise ProposalExpired()
            # No ledger entry simply means nobody voted.
            proposal.status = outcome(self.votes.get(proposal_id) or [])

        return self.proposals.mutate(proposal_id, _apply).status

    def resolve(self) -> Result:
        """
        Settle every pending proposal whose deadline is behind the clock.

        Safe to call at any cadence, repeatedly or after skipped blocks:
        already-settled proposals are left alone.
        """
        with self._lock:
            now = self.clock.current()
            resolved: Dict[ProposalId, str] = {}
            failures: Dict[ProposalId, str] = {}

            for pid, proposal in self.proposals.items():
                if not proposal.is_due_at(now):
                    continue
                try:
                    resolved[pid] = self._resolve_one(pid, now)
                except DispatchError as e:
                    log.warning("resolution of proposal %s failed: %s", pid, e.code)
                    failures[pid] = e.code
                except Exception as e:
                    log.exception("resolution of proposal %s crashed", pid)
                    failures[pid] = type(e).__name__

            if resolved:
                log.info("resolved %d proposal(s) at block %s: %s", len(resolved), now, resolved)
            return ok(block=now, resolved=resolved, failed=failures)

    def pass_proposal(self, caller: Optional[AccountId] = None) -> Result:
        log.debug("resolution sweep triggered by %s", caller or "<node>")
        return self.resolve()

    # ------------------------
    # Queries
    # ------------------------
    def get_proposal(self, proposal_id: ProposalId) -> Result:
        def _get() -> Result:
            ensure(_is_int(proposal_id), ProposalDoesNotExist)
            proposal = self.proposals.get(proposal_id)
            ensure(proposal is not None, ProposalDoesNotExist)
            return ok(proposal=proposal.to_dict(), tally=count_votes(self.votes.get(proposal_id) or []))

        return as_result(_get)

    def list_proposals(self) -> Result:
        return ok(proposals=[p.to_dict() for _pid, p in self.proposals.items()])

    def list_votes(self, proposal_id: ProposalId) -> Result:
        def _votes() -> Result:
            ensure(_is_int(proposal_id) and proposal_id in self.proposals, ProposalDoesNotExist)
            return ok(votes=[v.to_dict() for v in self.votes.get(proposal_id) or []])

        return as_result(_votes)

    def vote_of(self, proposal_id: ProposalId, voter: AccountId) -> Result:
        def _vote_of() -> Result:
            ensure(_is_int(proposal_id) and proposal_id in self.proposals, ProposalDoesNotExist)
            return ok(vote=self.votes.vote_of(proposal_id, voter).to_dict())

        return as_result(_vote_of)

    def tally(self, proposal_id: ProposalId) -> Result:
        def _tally() -> Result:
            ensure(_is_int(proposal_id) and proposal_id in self.proposals, ProposalDoesNotExist)
            return ok(proposal_id=proposal_id, **count_votes(self.votes.get(proposal_id) or []))

        return as_result(_tally)

    # ------------------------
    # Snapshot
    # ------------------------
    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "next_proposal_id": self.allocator.snapshot(),
                "proposals": [p.to_dict() for _pid, p in self.proposals.items()],
                "votes": {
                    str(pid): [v.to_dict() for v in votes] for pid, votes in self.votes.items()
                },
            }

    def restore(self, raw: Dict[str, Any]) -> None:
        with self._lock:
            # Parse everything before touching state so a bad snapshot changes nothing.
            proposals = [Proposal.from_dict(p) for p in raw.get("proposals") or []]
            votes = {
                int(pid): [Vote.from_dict(v) for v in entries]
                for pid, entries in (raw.get("votes") or {}).items()
            }
            self.allocator.restore(raw.get("next_proposal_id"))
            self.proposals.load(proposals)
            self.votes.load(votes)
