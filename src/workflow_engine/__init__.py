"""Decision workflow engine.

Provides:
- decision delegates invoked by a BPMN-style host engine
- process launch and history query services over that host
- an in-process reference host, a CLI and a FastAPI adapter
"""

__version__ = "0.1.0"

from workflow_engine.engine.config import WorkflowSettings

__all__ = ["__version__", "WorkflowSettings"]
