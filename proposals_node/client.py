from __future__ import annotations

"""
Small HTTP client for a proposals node.

Fetches the caller's nonce, signs the call locally and posts it:

    c = ProposalsClient("http://127.0.0.1:8000", secret_key_hex)
    pid = c.create_proposal("Raise limit", "Details...", deadline=120)["proposal_id"]
    c.cast_vote(pid, "yes")

Any httpx.Client may be injected (fastapi's TestClient is one).
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .node import CALL_CREATE, CALL_RESOLVE, CALL_UPDATE, CALL_VOTE
from .runtime.origin import account_of, sign_call

log = logging.getLogger(__name__)


class ProposalsClientError(RuntimeError):
    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class ProposalsClient:
    def __init__(
        self,
        base_url: str,
        secret_key_hex: Optional[str] = None,
        *,
        timeout: float = 5.0,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.secret_key_hex = secret_key_hex
        self.account = account_of(secret_key_hex) if secret_key_hex else None
        self._http = http or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ProposalsClient":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    # ------------------------
    # Transport
    # ------------------------
    def _json(self, resp: httpx.Response) -> Dict[str, Any]:
        if resp.status_code >= 400:
            try:
                detail = str(resp.json().get("detail", resp.text))
            except ValueError:
                detail = resp.text
            raise ProposalsClientError(resp.status_code, detail)
        return resp.json()

    def _get(self, path: str, **params: Any) -> Dict[str, Any]:
        return self._json(self._http.get(path, params=params or None))

    def _signed_post(self, path: str, call: str, args: Dict[str, Any], body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.secret_key_hex:
            raise ValueError("a secret key is required for signed calls")
        nonce = self.nonce()
        signed = sign_call(self.secret_key_hex, call, nonce, args)
        payload = dict(body)
        payload.update({"account": signed.account, "nonce": signed.nonce, "signature": signed.signature})
        log.debug("POST %s call=%s nonce=%s", path, call, nonce)
        return self._json(self._http.post(path, json=payload))

    # ------------------------
    # Reads
    # ------------------------
    def nonce(self, account: Optional[str] = None) -> int:
        acct = account or self.account
        return int(self._get(f"/accounts/{acct}/nonce")["nonce"])

    def head(self) -> Dict[str, Any]:
        return self._get("/chain/head")

    def get_proposal(self, proposal_id: int) -> Dict[str, Any]:
        return self._get(f"/proposals/{int(proposal_id)}")

    def list_proposals(self) -> Dict[str, Any]:
        return self._get("/proposals")

    def votes(self, proposal_id: int) -> Dict[str, Any]:
        return self._get(f"/proposals/{int(proposal_id)}/votes")

    def events(self, since: int = 0) -> Dict[str, Any]:
        return self._get("/events", since=int(since))

    # ------------------------
    # Signed calls
    # ------------------------
    def create_proposal(self, name: str, description: str, deadline: int) -> Dict[str, Any]:
        args = {"name": name, "description": description, "deadline": int(deadline)}
        return self._signed_post("/proposals/create", CALL_CREATE, args, args)

    def update_proposal(self, proposal_id: int, name: str, description: str) -> Dict[str, Any]:
        args = {"proposal_id": int(proposal_id), "name": name, "description": description}
        body = {"name": name, "description": description}
        return self._signed_post(f"/proposals/{int(proposal_id)}/update", CALL_UPDATE, args, body)

    def cast_vote(self, proposal_id: int, choice: str) -> Dict[str, Any]:
        args = {"proposal_id": int(proposal_id), "choice": choice}
        return self._signed_post(f"/proposals/{int(proposal_id)}/vote", CALL_VOTE, args, {"choice": choice})

    def resolve(self) -> Dict[str, Any]:
        return self._signed_post("/proposals/resolve", CALL_RESOLVE, {}, {})
