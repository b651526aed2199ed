import json

import pytest

from proposals_node.__main__ import main, parse_args
from proposals_node.runtime.origin import account_of


def test_keygen_prints_matching_account(capsys):
    assert main(["keygen"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert account_of(out["secret_key"]) == out["account"]


def test_vote_choice_is_restricted():
    args = parse_args(["vote", "--key", "00" * 32, "--id", "3", "--choice", "yes"])
    assert (args.cmd, args.id, args.choice) == ("vote", 3, "yes")

    with pytest.raises(SystemExit):
        parse_args(["vote", "--key", "00" * 32, "--id", "3", "--choice", "maybe"])


def test_signed_commands_need_a_key(monkeypatch):
    monkeypatch.delenv("PROPOSALS_SECRET_KEY", raising=False)
    with pytest.raises(SystemExit):
        main(["resolve"])
