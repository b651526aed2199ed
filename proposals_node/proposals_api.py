from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import proposals
from .config import load_config
from .node import ProposalsNode

log = logging.getLogger(__name__)


def create_app(node: Optional[ProposalsNode] = None, cfg: Optional[Dict[str, Any]] = None) -> FastAPI:
    """
    Build the API around `node`, or around a node built from `cfg`
    (falling back to proposals_config.yaml in the working directory).

    The block producer is started and stopped with the app; a node passed
    in by the caller is left for the caller to run.
    """
    owns_node = node is None
    if node is None:
        node = ProposalsNode(cfg or load_config(os.getcwd()))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if owns_node:
            node.start()
            log.info("proposals node up at block %s", node.current_block())
        try:
            yield
        finally:
            if owns_node:
                node.stop()

    app = FastAPI(title="Proposals Node API", lifespan=lifespan)
    app.state.node = node

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(proposals.node_router)
    app.include_router(proposals.router)

    return app
