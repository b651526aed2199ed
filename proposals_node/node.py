# proposals_node/node.py
"""
ProposalsNode: one governance node process.

Wires together:
- BlockClock        (time source)
- ProposalsRuntime  (state machine + resolution sweep)
- NonceStore        (signed-call replay protection)
- EventLog          (notifications for indexers)
- SnapshotStore     (JSON persistence) or MemoryStore
- BlockProducer + OffchainWorker (periodic resolution)

Every state-changing entry point runs under a single RLock, so calls are
strictly serialized: no call observes another one half-applied.

As on a chain, a signed call that passes origin checks consumes its nonce
even if the call itself then fails (e.g. AlreadyVoted).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .config import default_config
from .runtime.atomic_store import MemoryStore, SnapshotStore
from .runtime.clock import BlockClock
from .runtime.errors import BadCall, DispatchError, failed
from .runtime.events import EventLog
from .runtime.ids import ProposalIdAllocator
from .runtime.origin import NonceStore, OriginPolicy, SignedCall, ensure_signed
from .runtime.proposals import ProposalsRuntime
from .runtime.worker import BlockProducer, OffchainWorker

log = logging.getLogger(__name__)

CALL_CREATE = "create_proposal"
CALL_UPDATE = "update_proposal"
CALL_VOTE = "cast_vote"
CALL_RESOLVE = "pass_proposal"

VALID_CALLS = {CALL_CREATE, CALL_UPDATE, CALL_VOTE, CALL_RESOLVE}

Store = Union[SnapshotStore, MemoryStore]


def _store_from_config(cfg: Dict[str, Any]) -> Store:
    p = cfg.get("persistence", {})
    driver = str(p.get("driver", "json")).lower()
    if driver == "memory":
        return MemoryStore()
    if driver != "json":
        raise ValueError(f"unknown persistence driver: {driver}")
    return SnapshotStore(
        Path(p.get("data_dir", "data")),
        filename=str(p.get("filename", "proposals_state.json")),
        keep_backups=int(p.get("keep_backups", 2)),
    )


class ProposalsNode:
    def __init__(self, cfg: Optional[Dict[str, Any]] = None, *, store: Optional[Store] = None) -> None:
        self.cfg = cfg or default_config()
        rt_cfg = self.cfg.get("runtime", {})
        chain_cfg = self.cfg.get("chain", {})
        worker_cfg = self.cfg.get("worker", {})

        self.store = store if store is not None else _store_from_config(self.cfg)
        self.policy = OriginPolicy(
            require_signature=bool(self.cfg.get("security", {}).get("require_signed_calls", True))
        )

        self.clock = BlockClock(int(chain_cfg.get("start_block", 0)))
        self.events = EventLog()
        self.nonces = NonceStore()
        self.runtime = ProposalsRuntime(
            self.clock,
            allocator=ProposalIdAllocator(int(rt_cfg.get("initial_proposal_id", 0))),
            events=self.events,
            name_limit=int(rt_cfg.get("name_limit", 50)),
            description_limit=int(rt_cfg.get("description_limit", 250)),
        )

        self._lock = threading.RLock()
        self._load()

        self.worker = OffchainWorker(self, int(worker_cfg.get("resolve_every_blocks", 40)))
        self.producer = BlockProducer(self, float(chain_cfg.get("block_time_sec", 6.0)))
        self.producer.add_hook(self.worker.on_block)

    # ----------------------- persistence ------------------

    def _load(self) -> None:
        last_error: Optional[Exception] = None
        for source, raw in self.store.candidates():
            try:
                with self._lock:
                    self._restore(raw)
            except (KeyError, TypeError, ValueError) as e:
                log.warning("snapshot %s is unusable (%s); trying an older one", source, e)
                last_error = e
                continue
            if last_error is not None:
                log.warning("recovered state from %s", source)
            log.info(
                "loaded state: block=%s proposals=%s",
                self.clock.current(),
                len(self.runtime.proposals),
            )
            return
        if last_error is not None:
            raise last_error

    def _restore(self, raw: Dict[str, Any]) -> None:
        block = int(raw.get("block_number", 0))
        self.runtime.restore(raw.get("runtime") or {})
        self.nonces.restore(raw.get("nonces") or {})
        self.events.restore(raw.get("events") or {})
        # Only once everything else restored: the clock never moves back.
        self.clock.set_block_number(max(self.clock.current(), block))

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "block_number": self.clock.current(),
                "runtime": self.runtime.snapshot(),
                "nonces": self.nonces.snapshot(),
                "events": self.events.snapshot(),
            }

    def save_state(self) -> None:
        with self._lock:
            self.store.save(self.snapshot())

    # ----------------------- chain ------------------

    def current_block(self) -> int:
        return self.clock.current()

    def advance_block(self, n: int = 1) -> int:
        with self._lock:
            block = self.clock.advance(n)
            self.save_state()
            return block

    def set_block_number(self, block: int) -> int:
        with self._lock:
            block = self.clock.set_block_number(block)
            self.save_state()
            return block

    # ----------------------- calls ------------------

    def dispatch(self, signed: SignedCall) -> Dict[str, Any]:
        """
        Authenticate and apply one signed call.

        Raises BadOrigin when the signature or nonce is rejected; every
        other failure comes back as {"ok": False, "error": code}.
        """
        with self._lock:
            if signed.call not in VALID_CALLS:
                return failed(BadCall(f"unknown call: {signed.call}"))

            who = ensure_signed(signed, self.nonces, self.policy)
            try:
                result = self._apply(who, signed.call, signed.args)
            except DispatchError as e:
                result = failed(e)

            # Nonce was consumed either way.
            self.save_state()
            return result

    def _apply(self, who: str, call: str, args: Dict[str, Any]) -> Dict[str, Any]:
        try:
            if call == CALL_CREATE:
                return self.runtime.create_proposal(
                    who, str(args["name"]), str(args["description"]), int(args["deadline"])
                )
            if call == CALL_UPDATE:
                return self.runtime.update_proposal(
                    who, int(args["proposal_id"]), str(args["name"]), str(args["description"])
                )
            if call == CALL_VOTE:
                return self.runtime.cast_vote(who, int(args["proposal_id"]), str(args["choice"]))
        except (KeyError, TypeError, ValueError) as e:
            raise BadCall(f"bad arguments for {call}: {e}") from e
        return self.resolve(caller=who)

    def resolve(self, caller: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            result = self.runtime.pass_proposal(caller)
            if result.get("resolved"):
                self.save_state()
            return result

    # ----------------------- lifecycle ------------------

    def start(self) -> None:
        if bool(self.cfg.get("worker", {}).get("enabled", True)):
            self.producer.start()

    def stop(self) -> None:
        self.producer.stop()
        self.save_state()

    def status(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "block": self.clock.current(),
            "proposals": len(self.runtime.proposals),
            "next_proposal_id": self.runtime.allocator.peek(),
            "worker_running": self.producer.running,
            "resolve_every_blocks": self.worker.resolve_every_blocks,
        }
