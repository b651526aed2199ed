from __future__ import annotations

"""
Proposals HTTP API.

Routes
------
- GET  /proposals                          list every proposal
- GET  /proposals/{id}                     one proposal + yes/no tally
- GET  /proposals/{id}/votes               votes in casting order
- GET  /proposals/{id}/votes/{account}     a single account's vote
- POST /proposals/create                   signed create_proposal
- POST /proposals/{id}/update              signed update_proposal
- POST /proposals/{id}/vote                signed cast_vote
- POST /proposals/resolve                  signed resolution sweep trigger

Signed bodies carry `account` (hex ed25519 public key), `nonce` and
`signature` next to the call's own fields; see runtime/origin.py for the
exact preimage.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..node import CALL_CREATE, CALL_RESOLVE, CALL_UPDATE, CALL_VOTE, ProposalsNode
from ..runtime.errors import BadOrigin
from ..runtime.origin import SignedCall

router = APIRouter(prefix="/proposals", tags=["proposals"])

_STATUS_BY_ERROR = {
    "ProposalDoesNotExist": 404,
    "VoteDoesNotExist": 404,
    "NotAllowed": 403,
    "BadOrigin": 401,
}


def get_node(request: Request) -> ProposalsNode:
    return request.app.state.node


def raise_for_result(result: Dict[str, Any]) -> Dict[str, Any]:
    if not result.get("ok"):
        code = str(result.get("error", "DispatchError"))
        raise HTTPException(status_code=_STATUS_BY_ERROR.get(code, 400), detail=code)
    return result


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class SignedBody(BaseModel):
    account: str = Field(..., description="Hex-encoded ed25519 public key of the caller.")
    nonce: int = Field(..., ge=0)
    signature: str = ""


class CreateProposalBody(SignedBody):
    name: str
    description: str = ""
    deadline: int = Field(..., description="Block number after which voting closes.")


class UpdateProposalBody(SignedBody):
    name: str
    description: str = ""


class CastVoteBody(SignedBody):
    choice: str = Field(..., description='"yes" or "no"')


class ResolveBody(SignedBody):
    pass


def _dispatch(node: ProposalsNode, body: SignedBody, call: str, args: Dict[str, Any]) -> Dict[str, Any]:
    signed = SignedCall(call=call, account=body.account, nonce=body.nonce, args=args, signature=body.signature)
    try:
        result = node.dispatch(signed)
    except BadOrigin as e:
        raise HTTPException(status_code=401, detail=f"BadOrigin: {e}") from e
    return raise_for_result(result)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("")
def list_proposals(node: ProposalsNode = Depends(get_node)):
    return node.runtime.list_proposals()


@router.get("/{proposal_id}")
def get_proposal(proposal_id: int, node: ProposalsNode = Depends(get_node)):
    return raise_for_result(node.runtime.get_proposal(proposal_id))


@router.get("/{proposal_id}/votes")
def list_votes(proposal_id: int, node: ProposalsNode = Depends(get_node)):
    return raise_for_result(node.runtime.list_votes(proposal_id))


@router.get("/{proposal_id}/votes/{account}")
def get_vote(proposal_id: int, account: str, node: ProposalsNode = Depends(get_node)):
    return raise_for_result(node.runtime.vote_of(proposal_id, account))


# ---------------------------------------------------------------------------
# Signed calls
# ---------------------------------------------------------------------------


@router.post("/create")
def create_proposal(body: CreateProposalBody, node: ProposalsNode = Depends(get_node)):
    args = {"name": body.name, "description": body.description, "deadline": body.deadline}
    return _dispatch(node, body, CALL_CREATE, args)


@router.post("/resolve")
def resolve(body: ResolveBody, node: ProposalsNode = Depends(get_node)):
    result = _dispatch(node, body, CALL_RESOLVE, {})
    # JSON object keys are strings anyway; make it explicit.
    result["resolved"] = {str(k): v for k, v in result.get("resolved", {}).items()}
    result["failed"] = {str(k): v for k, v in result.get("failed", {}).items()}
    return result


@router.post("/{proposal_id}/update")
def update_proposal(proposal_id: int, body: UpdateProposalBody, node: ProposalsNode = Depends(get_node)):
    args = {"proposal_id": proposal_id, "name": body.name, "description": body.description}
    return _dispatch(node, body, CALL_UPDATE, args)


@router.post("/{proposal_id}/vote")
def cast_vote(proposal_id: int, body: CastVoteBody, node: ProposalsNode = Depends(get_node)):
    args = {"proposal_id": proposal_id, "choice": body.choice}
    return _dispatch(node, body, CALL_VOTE, args)


# ---------------------------------------------------------------------------
# Node routes (mounted without prefix)
# ---------------------------------------------------------------------------

node_router = APIRouter(tags=["node"])


@node_router.get("/health")
def health(node: ProposalsNode = Depends(get_node)):
    return {"ok": True, "block": node.current_block()}


@node_router.get("/chain/head")
def chain_head(node: ProposalsNode = Depends(get_node)):
    return node.status()


@node_router.get("/accounts/{account}/nonce")
def account_nonce(account: str, node: ProposalsNode = Depends(get_node)):
    return {"ok": True, "account": account, "nonce": node.nonces.expected(account)}


@node_router.get("/events")
def events(since: Optional[int] = 0, node: ProposalsNode = Depends(get_node)):
    return {"ok": True, "events": node.events.since(int(since or 0))}
