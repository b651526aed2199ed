import pytest

from proposals_node.runtime.errors import (
    AlreadyVoted,
    NotAllowed,
    ProposalDoesNotExist,
    StoreConsistencyError,
    VoteDoesNotExist,
)
from proposals_node.runtime.store import ProposalStore, VoteLedger
from proposals_node.runtime.types import Proposal, Vote


def _proposal(pid=0, proposer="alice"):
    return Proposal(id=pid, proposer=proposer, name="name", description="description", deadline=20)


# ============================================================
# ProposalStore
# ============================================================

def test_insert_and_get_returns_copy():
    store = ProposalStore()
    store.insert(0, _proposal())

    got = store.get(0)
    got.name = "tampered"
    assert store.get(0).name == "name"


def test_insert_duplicate_id_is_consistency_error():
    store = ProposalStore()
    store.insert(0, _proposal())
    with pytest.raises(StoreConsistencyError):
        store.insert(0, _proposal())


def test_get_missing_is_none():
    assert ProposalStore().get(42) is None


def test_mutate_missing_raises():
    with pytest.raises(ProposalDoesNotExist):
        ProposalStore().mutate(1, lambda p: None)


def test_mutate_writes_back():
    store = ProposalStore()
    store.insert(0, _proposal())

    def _rename(p):
        p.name = "renamed"

    out = store.mutate(0, _rename)
    assert out.name == "renamed"
    assert store.get(0).name == "renamed"


def test_mutate_failure_leaves_record_untouched():
    store = ProposalStore()
    store.insert(0, _proposal())

    def _half_then_fail(p):
        p.name = "partial"
        raise NotAllowed()

    with pytest.raises(NotAllowed):
        store.mutate(0, _half_then_fail)
    assert store.get(0).name == "name"


def test_items_sorted_by_id():
    store = ProposalStore()
    for pid in (3, 1, 2):
        store.insert(pid, _proposal(pid))
    assert [pid for pid, _ in store.items()] == [1, 2, 3]


# ============================================================
# VoteLedger
# ============================================================

def test_append_creates_entry():
    ledger = VoteLedger()
    assert ledger.get(0) is None
    ledger.append(0, Vote("bob", "yes"))
    assert ledger.get(0) == [Vote("bob", "yes")]


def test_second_vote_from_same_voter_rejected():
    ledger = VoteLedger()
    ledger.append(0, Vote("bob", "yes"))
    with pytest.raises(AlreadyVoted):
        ledger.append(0, Vote("bob", "no"))
    assert ledger.get(0) == [Vote("bob", "yes")]


def test_same_voter_may_vote_on_other_proposals():
    ledger = VoteLedger()
    ledger.append(0, Vote("bob", "yes"))
    ledger.append(1, Vote("bob", "no"))
    assert ledger.get(1) == [Vote("bob", "no")]


def test_votes_keep_casting_order():
    ledger = VoteLedger()
    for voter, choice in (("a", "yes"), ("b", "no"), ("c", "yes")):
        ledger.append(7, Vote(voter, choice))
    assert [v.voter for v in ledger.get(7)] == ["a", "b", "c"]


def test_require_and_vote_of_missing():
    ledger = VoteLedger()
    with pytest.raises(VoteDoesNotExist):
        ledger.require(0)

    ledger.append(0, Vote("bob", "yes"))
    assert ledger.vote_of(0, "bob") == Vote("bob", "yes")
    with pytest.raises(VoteDoesNotExist):
        ledger.vote_of(0, "carol")
