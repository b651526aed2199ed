# proposals_node/runtime/types.py
from __future__ import annotations

"""
Record shapes for the proposals runtime.

Proposals and votes are small dataclasses that round-trip through plain
JSON dicts, so the same shapes are used by the snapshot store and the
HTTP API:

    proposal = {
        "id": 0,
        "proposer": "<account>",
        "name": "...",
        "description": "...",
        "deadline": 20,
        "status": "pending" | "accepted" | "rejected",
    }

    vote = {"voter": "<account>", "choice": "yes" | "no"}
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"

VALID_STATUSES = {STATUS_PENDING, STATUS_ACCEPTED, STATUS_REJECTED}

CHOICE_YES = "yes"
CHOICE_NO = "no"

VALID_CHOICES = {CHOICE_YES, CHOICE_NO}

# Account ids are opaque strings (hex ed25519 public keys on a real node).
AccountId = str
ProposalId = int
BlockNumber = int


@dataclass
class Proposal:
    id: ProposalId
    proposer: AccountId
    name: str
    description: str
    deadline: BlockNumber
    status: str = STATUS_PENDING

    def is_open_at(self, block: BlockNumber) -> bool:
        """True while updates and votes are still accepted."""
        return self.deadline > block and self.status == STATUS_PENDING

    def is_due_at(self, block: BlockNumber) -> bool:
        """True once the resolution sweep should settle this proposal."""
        return self.status == STATUS_PENDING and self.deadline < block

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Proposal":
        status = str(raw.get("status", STATUS_PENDING))
        if status not in VALID_STATUSES:
            raise ValueError(f"unknown proposal status: {status}")
        return cls(
            id=int(raw["id"]),
            proposer=str(raw["proposer"]),
            name=str(raw.get("name", "")),
            description=str(raw.get("description", "")),
            deadline=int(raw["deadline"]),
            status=status,
        )


@dataclass(frozen=True)
class Vote:
    voter: AccountId
    choice: str

    def to_dict(self) -> Dict[str, Any]:
        return {"voter": self.voter, "choice": self.choice}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Vote":
        choice = str(raw.get("choice", ""))
        if choice not in VALID_CHOICES:
            raise ValueError(f"unknown vote choice: {choice}")
        return cls(voter=str(raw["voter"]), choice=choice)
