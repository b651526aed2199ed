#!/usr/bin/env python3
"""
proposals_node/runtime/worker.py
--------------------------------

Background block production + periodic resolution trigger.

BlockProducer advances the node clock every `block_time_sec` and hands
each new block number to the registered hooks. OffchainWorker is one such
hook: on every `resolve_every_blocks`-th block it runs a resolution sweep.

The runtime never decides when to resolve; this module is the only place
that policy lives, and skipping or repeating a sweep is harmless.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional

log = logging.getLogger(__name__)

BlockHook = Callable[[int], None]


class OffchainWorker:
    def __init__(self, node: Any, resolve_every_blocks: int = 40) -> None:
        if int(resolve_every_blocks) <= 0:
            raise ValueError("resolve_every_blocks must be > 0")
        self.node = node
        self.resolve_every_blocks = int(resolve_every_blocks)

    def on_block(self, block_number: int) -> Optional[dict]:
        if block_number % self.resolve_every_blocks != 0:
            return None

        log.info("checking proposals at block %s", block_number)
        result = self.node.resolve(caller=None)
        if result.get("failed"):
            log.error("[%s] resolution failures: %s", block_number, result["failed"])
        return result


class BlockProducer:
    def __init__(self, node: Any, block_time_sec: float = 6.0) -> None:
        self.node = node
        self.block_time_sec = max(0.01, float(block_time_sec))
        self.hooks: List[BlockHook] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add_hook(self, hook: BlockHook) -> None:
        self.hooks.append(hook)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        t = threading.Thread(target=self._run, name="proposals-block-producer", daemon=True)
        self._thread = t
        t.start()
        log.info("block producer started (block_time=%ss)", self.block_time_sec)

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        t = self._thread
        if t and t.is_alive():
            t.join(timeout=timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.block_time_sec):
            try:
                self.tick()
            except Exception:
                log.exception("block tick failed")

    def tick(self) -> int:
        """Produce one block and run every hook for it."""
        block_number = self.node.advance_block()
        for hook in list(self.hooks):
            try:
                hook(block_number)
            except Exception:
                log.exception("block hook failed at block %s", block_number)
        return block_number
