# proposals_node/runtime/events.py
from __future__ import annotations

"""
Event log for indexers and notification consumers.

Each successful create / update / vote deposits exactly one record:

    {"seq": 3, "event": "VoteCasted", "proposal_id": 0, "block": 7}

Subscribers are called synchronously after the record is stored. A
failing subscriber is logged and skipped so it can never undo a dispatch.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

from .types import BlockNumber, ProposalId

log = logging.getLogger(__name__)

EVENT_CREATED = "CreatedProposal"
EVENT_UPDATED = "UpdatedProposal"
EVENT_VOTED = "VoteCasted"

Event = Dict[str, Any]
Subscriber = Callable[[Event], None]


class EventLog:
    def __init__(self, max_events: int = 10_000) -> None:
        self.max_events = int(max_events)
        self._events: List[Event] = []
        self._next_seq = 1
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def deposit(self, kind: str, proposal_id: ProposalId, block: BlockNumber) -> Event:
        with self._lock:
            ev = {
                "seq": self._next_seq,
                "event": kind,
                "proposal_id": int(proposal_id),
                "block": int(block),
            }
            self._next_seq += 1
            self._events.append(ev)
            if len(self._events) > self.max_events:
                del self._events[: len(self._events) - self.max_events]

        log.info("event %s proposal=%s block=%s", kind, proposal_id, block)
        for cb in list(self._subscribers):
            try:
                cb(dict(ev))
            except Exception:
                log.exception("event subscriber failed for %s", kind)
        return dict(ev)

    def since(self, seq: int = 0) -> List[Event]:
        with self._lock:
            return [dict(e) for e in self._events if e["seq"] > int(seq)]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {"next_seq": self._next_seq, "events": [dict(e) for e in self._events]}

    def restore(self, raw: Dict[str, Any]) -> None:
        with self._lock:
            events = raw.get("events") or []
            self._events = [dict(e) for e in events if isinstance(e, dict)]
            self._next_seq = int(raw.get("next_seq") or (len(self._events) + 1))
