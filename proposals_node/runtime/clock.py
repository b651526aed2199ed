# proposals_node/runtime/clock.py
from __future__ import annotations

import threading

from .types import BlockNumber


class BlockClock:
    """Monotonic block counter used as the runtime's notion of time."""

    def __init__(self, start: BlockNumber = 0) -> None:
        if int(start) < 0:
            raise ValueError("block number must be >= 0")
        self._block = int(start)
        self._lock = threading.Lock()

    def current(self) -> BlockNumber:
        with self._lock:
            return self._block

    def advance(self, n: int = 1) -> BlockNumber:
        if int(n) < 0:
            raise ValueError("cannot advance by a negative number of blocks")
        with self._lock:
            self._block += int(n)
            return self._block

    def set_block_number(self, block: BlockNumber) -> BlockNumber:
        with self._lock:
            if int(block) < self._block:
                raise ValueError(f"block number cannot move backwards ({self._block} -> {block})")
            self._block = int(block)
            return self._block
