"""FastAPI server adapter for the workflow engine.

Design intent:
- Keep decision logic and history queries in `workflow_engine.engine.*`
- Keep server-specific concerns (routing, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from workflow_engine.server.app import create_app
