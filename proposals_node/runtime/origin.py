# proposals_node/runtime/origin.py
from __future__ import annotations

"""
Signed-call origins.

A caller proves its identity by signing each call with its Ed25519 key.
The account id *is* the hex-encoded public key, so verification needs no
account registry:

    preimage  = SHA256(domain_tag || call || canonical_json({account, nonce, args}))
    signature = Ed25519(secret_key, preimage)

Nonces are per account and must match the expected value exactly; the
expected value is bumped after every accepted call so a captured request
cannot be replayed.

In dev mode (OriginPolicy.require_signature=False) an empty signature is
accepted, but a signature that *is* present must still verify.
"""

import binascii
import hashlib
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from .errors import BadOrigin
from .types import AccountId

DOMAIN_TAG = b"PROPOSALS/CALL/v1"


@dataclass(frozen=True)
class OriginPolicy:
    require_signature: bool = True
    account_key_len: int = 32  # Ed25519 public key length
    sig_len: int = 64  # Ed25519 signature length


@dataclass(frozen=True)
class SignedCall:
    call: str
    account: AccountId
    nonce: int
    args: Dict[str, Any] = field(default_factory=dict)
    signature: str = ""


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def _hex_to_bytes(h: str) -> bytes:
    h = (h or "").strip().lower()
    if h.startswith("0x"):
        h = h[2:]
    return binascii.unhexlify(h.encode("ascii"))


def generate_keypair() -> Tuple[str, str]:
    """Return (secret_key_hex, account_id) for a fresh Ed25519 key."""
    sk = Ed25519PrivateKey.generate()
    sk_raw = sk.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return sk_raw.hex(), account_of(sk_raw.hex())


def account_of(secret_key_hex: str) -> AccountId:
    sk = Ed25519PrivateKey.from_private_bytes(_hex_to_bytes(secret_key_hex))
    pk_raw = sk.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return pk_raw.hex()


# ---------------------------------------------------------------------------
# Preimage / signing
# ---------------------------------------------------------------------------


def canonical_json(obj: Any) -> bytes:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def signing_preimage(call: str, account: AccountId, nonce: int, args: Mapping[str, Any]) -> bytes:
    payload = (
        DOMAIN_TAG
        + call.encode("utf-8")
        + canonical_json({"account": account, "nonce": int(nonce), "args": dict(args)})
    )
    return hashlib.sha256(payload).digest()


def sign_call(secret_key_hex: str, call: str, nonce: int, args: Mapping[str, Any]) -> SignedCall:
    account = account_of(secret_key_hex)
    sk = Ed25519PrivateKey.from_private_bytes(_hex_to_bytes(secret_key_hex))
    sig = sk.sign(signing_preimage(call, account, nonce, args))
    return SignedCall(call=call, account=account, nonce=int(nonce), args=dict(args), signature=sig.hex())


def _verify_signature(policy: OriginPolicy, signed: SignedCall) -> None:
    try:
        account_raw = _hex_to_bytes(signed.account)
        sig = _hex_to_bytes(signed.signature)
    except (binascii.Error, ValueError) as e:
        raise BadOrigin(f"malformed hex: {e}") from e

    if len(account_raw) != policy.account_key_len:
        raise BadOrigin(f"account must be {policy.account_key_len} bytes (ed25519 pubkey)")
    if len(sig) != policy.sig_len:
        raise BadOrigin(f"signature must be {policy.sig_len} bytes (ed25519 signature)")

    preimage = signing_preimage(signed.call, signed.account, signed.nonce, signed.args)
    try:
        Ed25519PublicKey.from_public_bytes(account_raw).verify(sig, preimage)
    except InvalidSignature as e:
        raise BadOrigin("signature verification failed") from e


# ---------------------------------------------------------------------------
# Nonces
# ---------------------------------------------------------------------------


class NonceStore:
    """Expected next nonce per account, backed by a plain dict."""

    def __init__(self, backing: Optional[Dict[str, int]] = None) -> None:
        self._d: Dict[str, int] = dict(backing or {})
        self._lock = threading.Lock()

    def expected(self, account: AccountId) -> int:
        with self._lock:
            return int(self._d.get(account, 0))

    def check_and_commit(self, account: AccountId, nonce: int) -> None:
        with self._lock:
            expected = int(self._d.get(account, 0))
            if int(nonce) != expected:
                raise BadOrigin(f"bad nonce: expected {expected}, got {nonce}")
            self._d[account] = expected + 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._d)

    def restore(self, backing: Dict[str, int]) -> None:
        with self._lock:
            self._d = {str(k): int(v) for k, v in (backing or {}).items()}


def ensure_signed(
    signed: SignedCall,
    nonces: NonceStore,
    policy: Optional[OriginPolicy] = None,
) -> AccountId:
    """
    Verify a signed call and consume its nonce. Returns the caller's account.

    Raises BadOrigin on any failure; the nonce is only consumed on success.
    """
    pol = policy or OriginPolicy()

    if not signed.account:
        raise BadOrigin("account missing")

    if signed.signature or pol.require_signature:
        _verify_signature(pol, signed)

    nonces.check_and_commit(signed.account, signed.nonce)
    return signed.account
