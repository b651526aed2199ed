"""
proposals_node/app.py
---------------------
Thin entrypoint for running the API via:

    uvicorn proposals_node.app:app

All route wiring lives in proposals_node.proposals_api.
"""

from .proposals_api import create_app

app = create_app()
