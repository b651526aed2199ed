import pytest

from proposals_node.node import ProposalsNode
from proposals_node.runtime.atomic_store import MemoryStore
from proposals_node.runtime.errors import BadOrigin
from proposals_node.runtime.events import EventLog
from proposals_node.runtime.origin import SignedCall, sign_call


def test_unknown_call_is_bad_call(node, keys):
    sk, account = keys["alice"]
    res = node.dispatch(sign_call(sk, "delete_everything", 0, {}))
    assert res == {"ok": False, "error": "BadCall"}
    assert node.nonces.expected(account) == 0


def test_malformed_args_consume_nonce(node, keys):
    sk, account = keys["alice"]
    res = node.dispatch(sign_call(sk, "create_proposal", 0, {"name": "n"}))
    assert res == {"ok": False, "error": "BadCall"}
    assert node.nonces.expected(account) == 1


def test_failed_call_still_consumes_nonce(node, keys):
    sk, account = keys["alice"]
    res = node.dispatch(sign_call(sk, "create_proposal", 0, {"name": "n", "description": "", "deadline": 0}))
    assert res == {"ok": False, "error": "InvalidDuration"}
    assert node.nonces.expected(account) == 1


def test_bad_origin_raises(node):
    with pytest.raises(BadOrigin):
        node.dispatch(SignedCall(call="pass_proposal", account="someone", nonce=0))


def test_dev_mode_accepts_unsigned_calls(cfg):
    cfg["security"]["require_signed_calls"] = False
    node = ProposalsNode(cfg, store=MemoryStore())

    res = node.dispatch(
        SignedCall(call="create_proposal", account="dev", nonce=0, args={"name": "n", "description": "", "deadline": 9})
    )
    assert res["ok"] is True
    assert node.runtime.get_proposal(res["proposal_id"])["proposal"]["proposer"] == "dev"


def test_node_honours_runtime_limits(cfg):
    cfg["runtime"]["name_limit"] = 3
    cfg["runtime"]["initial_proposal_id"] = 100
    node = ProposalsNode(cfg, store=MemoryStore())

    assert node.runtime.create_proposal("a", "abcd", "", 5) == {"ok": False, "error": "BadName"}
    assert node.runtime.create_proposal("a", "abc", "", 5)["proposal_id"] == 100


def test_clock_never_moves_backwards(node):
    node.set_block_number(10)
    with pytest.raises(ValueError):
        node.set_block_number(9)
    assert node.advance_block() == 11


def test_event_subscriber_failure_does_not_undo_dispatch():
    log = EventLog()
    received = []

    def broken(_ev):
        raise RuntimeError("indexer down")

    log.subscribe(broken)
    log.subscribe(received.append)
    ev = log.deposit("CreatedProposal", 0, 1)

    assert received == [ev]
    assert log.since(0) == [ev]


def test_event_log_since_and_cap():
    log = EventLog(max_events=3)
    for pid in range(5):
        log.deposit("VoteCasted", pid, pid)

    assert [e["seq"] for e in log.since(0)] == [3, 4, 5]
    assert [e["seq"] for e in log.since(4)] == [5]
