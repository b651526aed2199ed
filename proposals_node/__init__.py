"""
Proposals node package initializer

Keep this module lightweight: the runtime must stay importable without
pulling in FastAPI / uvicorn.
"""

__all__ = []
