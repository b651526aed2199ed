# proposals_node/runtime/errors.py
from __future__ import annotations

"""
Dispatch errors for the proposals runtime.

Every precondition failure is a DispatchError subclass carrying a stable
`code`. Inside the runtime they are raised (mutate callbacks bail out by
raising), and the public operations turn them into result dicts:

    {"ok": False, "error": "AlreadyVoted"}

StoreConsistencyError is different: it flags a broken internal invariant
(for example an allocator handing out a used id) and is never converted.
"""

from typing import Any, Callable, Dict, TypeVar

T = TypeVar("T")


class DispatchError(Exception):
    code = "DispatchError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)


class ProposalDoesNotExist(DispatchError):
    code = "ProposalDoesNotExist"


class NotAllowed(DispatchError):
    code = "NotAllowed"


class BadDescription(DispatchError):
    code = "BadDescription"


class BadName(DispatchError):
    code = "BadName"


class ProposalExpired(DispatchError):
    code = "ProposalExpired"


class AlreadyVoted(DispatchError):
    code = "AlreadyVoted"


class InvalidDuration(DispatchError):
    code = "InvalidDuration"


class InvalidChoice(DispatchError):
    code = "InvalidChoice"


class VoteDoesNotExist(DispatchError):
    code = "VoteDoesNotExist"


class BadOrigin(DispatchError):
    """Signed-call verification failed (bad signature, key or nonce)."""

    code = "BadOrigin"


class BadCall(DispatchError):
    """Unknown call name or malformed call arguments."""

    code = "BadCall"


class StoreConsistencyError(RuntimeError):
    pass


def ensure(cond: bool, error: type) -> None:
    if not cond:
        raise error()


def ok(**fields: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {"ok": True}
    out.update(fields)
    return out


def failed(err: DispatchError) -> Dict[str, Any]:
    return {"ok": False, "error": err.code}


def as_result(fn: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    """Run `fn` and map any DispatchError to a failure result."""
    try:
        return fn()
    except DispatchError as e:
        return failed(e)
