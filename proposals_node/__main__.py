# proposals_node/__main__.py
"""
Entry point for running / driving a proposals node:

    python -m proposals_node serve   [--config proposals_config.yaml] [--host H] [--port P]
    python -m proposals_node keygen
    python -m proposals_node create  --key SK --name N --description D --deadline B
    python -m proposals_node update  --key SK --id ID --name N --description D
    python -m proposals_node vote    --key SK --id ID --choice yes|no
    python -m proposals_node resolve --key SK
    python -m proposals_node show    [--id ID]

Client subcommands talk to --url (default: PROPOSALS_URL or http://127.0.0.1:8000).
Env toggles are listed in proposals_node/config.py.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from .client import ProposalsClient, ProposalsClientError
from .config import get_bind_host, get_bind_port, get_log_level, load_config
from .runtime.origin import generate_keypair


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog="proposals-node", description="Proposal / vote governance node")
    p.add_argument("--url", default=os.environ.get("PROPOSALS_URL", "http://127.0.0.1:8000"))
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run the node HTTP API and block producer")
    s.add_argument("--config", default=None, help="Path to YAML config")
    s.add_argument("--host", default=None)
    s.add_argument("--port", type=int, default=None)

    sub.add_parser("keygen", help="Print a fresh ed25519 key and its account id")

    def _keyed(name: str, help_text: str) -> argparse.ArgumentParser:
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("--key", default=os.environ.get("PROPOSALS_SECRET_KEY"), help="Hex secret key")
        return sp

    c = _keyed("create", "Create a proposal")
    c.add_argument("--name", required=True)
    c.add_argument("--description", default="")
    c.add_argument("--deadline", type=int, required=True)

    u = _keyed("update", "Update one of your proposals")
    u.add_argument("--id", type=int, required=True)
    u.add_argument("--name", required=True)
    u.add_argument("--description", default="")

    v = _keyed("vote", "Vote on a proposal")
    v.add_argument("--id", type=int, required=True)
    v.add_argument("--choice", choices=["yes", "no"], required=True)

    _keyed("resolve", "Trigger a resolution sweep")

    sh = sub.add_parser("show", help="Show one proposal or list all")
    sh.add_argument("--id", type=int, default=None)

    return p.parse_args(argv)


def _serve(args) -> int:
    import uvicorn

    from .proposals_api import create_app

    cfg = load_config(os.getcwd(), path=args.config)
    logging.basicConfig(level=get_log_level(cfg), format="%(asctime)s [%(levelname)s] %(message)s")

    app = create_app(cfg=cfg)
    uvicorn.run(app, host=args.host or get_bind_host(cfg), port=args.port or get_bind_port(cfg))
    return 0


def _run_client(args) -> dict:
    key = getattr(args, "key", None)
    if args.cmd in ("create", "update", "vote", "resolve") and not key:
        raise SystemExit("--key (or PROPOSALS_SECRET_KEY) is required")

    with ProposalsClient(args.url, key) as c:
        if args.cmd == "create":
            return c.create_proposal(args.name, args.description, args.deadline)
        if args.cmd == "update":
            return c.update_proposal(args.id, args.name, args.description)
        if args.cmd == "vote":
            return c.cast_vote(args.id, args.choice)
        if args.cmd == "resolve":
            return c.resolve()
        if args.id is None:
            return c.list_proposals()
        return c.get_proposal(args.id)


def main(argv=None):
    args = parse_args(argv)

    if args.cmd == "serve":
        return _serve(args)

    if args.cmd == "keygen":
        sk_hex, account = generate_keypair()
        print(json.dumps({"secret_key": sk_hex, "account": account}, indent=2))
        return 0

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        out = _run_client(args)
    except ProposalsClientError as e:
        print(f"error: {e.detail} (HTTP {e.status_code})", file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
