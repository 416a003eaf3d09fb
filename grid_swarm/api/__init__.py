"""FastAPI service for grid_swarm.

Expose ``app`` so callers can run ``uvicorn grid_swarm.api.main:app``.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
