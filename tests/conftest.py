import pytest
from fastapi.testclient import TestClient

from proposals_node.config import default_config
from proposals_node.node import ProposalsNode
from proposals_node.proposals_api import create_app
from proposals_node.runtime.atomic_store import MemoryStore
from proposals_node.runtime.clock import BlockClock
from proposals_node.runtime.origin import generate_keypair
from proposals_node.runtime.proposals import ProposalsRuntime


@pytest.fixture
def clock():
    return BlockClock(start=1)


@pytest.fixture
def runtime(clock):
    return ProposalsRuntime(clock)


@pytest.fixture
def cfg():
    c = default_config()
    c["persistence"]["driver"] = "memory"
    c["worker"]["enabled"] = False
    return c


@pytest.fixture
def node(cfg):
    """Fresh in-memory node per test, block producer not running."""
    n = ProposalsNode(cfg, store=MemoryStore())
    yield n
    n.producer.stop()


@pytest.fixture
def keys():
    """{name: (secret_key_hex, account_id)} for alice, bob and carol."""
    return {name: generate_keypair() for name in ("alice", "bob", "carol")}


@pytest.fixture
def http(node):
    with TestClient(create_app(node)) as c:
        yield c
