from __future__ import annotations

"""
Atomic snapshot persistence for the proposals node.

- Atomic write (tempfile + fsync + os.replace + directory fsync)
- Rolling backups (.bak1, .bak2, ...) so a torn write never loses state
- Load fallback: primary -> bak1 -> bak2 -> ...
- Journal marker (.journal) present only while a save is in flight

The snapshot itself is one JSON document:

    {
        "schema_version": 1,
        "block_number": 42,
        "runtime": {"next_proposal_id": 3, "proposals": [...], "votes": {...}},
        "nonces": {"<account>": 2},
        "events": {"next_seq": 5, "events": [...]}
    }
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Union

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
PathLike = Union[str, Path]

SCHEMA_VERSION = 1


def _fsync_dir(dir_path: Path) -> None:
    # Not every platform allows opening a directory (Windows).
    try:
        fd = os.open(str(dir_path), os.O_DIRECTORY)
    except (AttributeError, OSError):
        return
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _json_dumps(obj: JsonDict) -> bytes:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(str(tmp_path), str(path))
        _fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def read_json(path: Path) -> Optional[JsonDict]:
    if not path.exists():
        return None
    try:
        obj = json.loads(path.read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        log.warning("unreadable snapshot %s: %s", path, e)
        return None
    return obj if isinstance(obj, dict) else None


def _rotate_backups(path: Path, keep: int) -> None:
    if keep <= 0:
        return

    # .bak(N-1) -> .bakN
    for i in range(keep, 1, -1):
        src = path.with_suffix(path.suffix + f".bak{i-1}")
        dst = path.with_suffix(path.suffix + f".bak{i}")
        if src.exists():
            os.replace(str(src), str(dst))

    if path.exists():
        os.replace(str(path), str(path.with_suffix(path.suffix + ".bak1")))


class SnapshotStore:
    def __init__(
        self,
        data_dir: PathLike = ".",
        *,
        filename: str = "proposals_state.json",
        keep_backups: int = 2,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.keep_backups = int(keep_backups)

    @property
    def path(self) -> Path:
        return self.data_dir / self.filename

    @property
    def journal_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".journal")

    def candidates(self) -> Iterator[Tuple[str, JsonDict]]:
        """Readable snapshots, newest first: primary, then .bak1, .bak2, ..."""
        if self.journal_path.exists():
            log.warning("found save journal for %s; last save may be incomplete", self.path)

        paths = [self.path]
        for i in range(1, max(1, self.keep_backups) + 1):
            paths.append(self.path.with_suffix(self.path.suffix + f".bak{i}"))

        for p in paths:
            obj = read_json(p)
            if obj is not None:
                yield str(p), obj

    def load(self) -> Optional[JsonDict]:
        for source, obj in self.candidates():
            if source != str(self.path):
                log.warning("recovered state from backup %s", source)
            return obj
        return None

    def save(self, state: JsonDict) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        doc = dict(state)
        doc.setdefault("schema_version", SCHEMA_VERSION)
        data = _json_dumps(doc)

        atomic_write_bytes(self.journal_path, b"1")
        _rotate_backups(self.path, keep=self.keep_backups)
        atomic_write_bytes(self.path, data)
        self.journal_path.unlink()


class MemoryStore:
    """Drop-in for SnapshotStore when persistence is disabled."""

    def __init__(self) -> None:
        self.last: Optional[JsonDict] = None

    def candidates(self) -> Iterator[Tuple[str, JsonDict]]:
        if self.last is not None:
            yield "memory", json.loads(_json_dumps(self.last))

    def save(self, state: JsonDict) -> None:
        self.last = json.loads(_json_dumps(state))
