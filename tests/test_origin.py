from dataclasses import replace

import pytest

from proposals_node.runtime.errors import BadOrigin
from proposals_node.runtime.origin import (
    NonceStore,
    OriginPolicy,
    SignedCall,
    account_of,
    ensure_signed,
    generate_keypair,
    sign_call,
    signing_preimage,
)


def test_keypair_account_is_public_key_hex():
    sk, account = generate_keypair()
    assert len(bytes.fromhex(sk)) == 32
    assert len(bytes.fromhex(account)) == 32
    assert account_of(sk) == account


def test_preimage_is_independent_of_arg_order():
    a = signing_preimage("cast_vote", "acct", 0, {"proposal_id": 1, "choice": "yes"})
    b = signing_preimage("cast_vote", "acct", 0, {"choice": "yes", "proposal_id": 1})
    assert a == b
    assert a != signing_preimage("cast_vote", "acct", 1, {"proposal_id": 1, "choice": "yes"})
    assert a != signing_preimage("update_proposal", "acct", 0, {"proposal_id": 1, "choice": "yes"})


def test_valid_signature_accepted_and_nonce_consumed():
    sk, account = generate_keypair()
    nonces = NonceStore()

    signed = sign_call(sk, "create_proposal", 0, {"name": "n", "description": "", "deadline": 9})
    assert ensure_signed(signed, nonces) == account
    assert nonces.expected(account) == 1


def test_replay_is_rejected():
    sk, _account = generate_keypair()
    nonces = NonceStore()
    signed = sign_call(sk, "pass_proposal", 0, {})

    ensure_signed(signed, nonces)
    with pytest.raises(BadOrigin):
        ensure_signed(signed, nonces)


def test_tampered_args_rejected():
    sk, account = generate_keypair()
    nonces = NonceStore()
    signed = sign_call(sk, "cast_vote", 0, {"proposal_id": 1, "choice": "yes"})
    forged = replace(signed, args={"proposal_id": 1, "choice": "no"})

    with pytest.raises(BadOrigin):
        ensure_signed(forged, nonces)
    # A rejected call leaves the nonce where it was.
    assert nonces.expected(account) == 0


def test_signature_from_other_key_rejected():
    sk_a, _ = generate_keypair()
    _sk_b, account_b = generate_keypair()
    signed = sign_call(sk_a, "pass_proposal", 0, {})
    impersonation = replace(signed, account=account_b)

    with pytest.raises(BadOrigin):
        ensure_signed(impersonation, NonceStore())


@pytest.mark.parametrize("account,signature", [("zz", "00" * 64), ("00" * 31, "00" * 64), ("00" * 32, "00" * 10)])
def test_malformed_inputs_rejected(account, signature):
    signed = SignedCall(call="pass_proposal", account=account, nonce=0, signature=signature)
    with pytest.raises(BadOrigin):
        ensure_signed(signed, NonceStore())


def test_unsigned_calls_need_dev_policy():
    unsigned = SignedCall(call="pass_proposal", account="dev-account", nonce=0)

    with pytest.raises(BadOrigin):
        ensure_signed(unsigned, NonceStore())

    nonces = NonceStore()
    dev = OriginPolicy(require_signature=False)
    assert ensure_signed(unsigned, nonces, dev) == "dev-account"
    # Nonces still apply in dev mode.
    with pytest.raises(BadOrigin):
        ensure_signed(unsigned, nonces, dev)


def test_nonce_store_snapshot_restore():
    n = NonceStore()
    n.check_and_commit("a", 0)
    n.check_and_commit("a", 1)

    m = NonceStore()
    m.restore(n.snapshot())
    assert m.expected("a") == 2
    assert m.expected("b") == 0
