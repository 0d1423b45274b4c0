"""Run persistence"""

from agentcheck.store.base import RunStore
from agentcheck.store.json_store import JsonRunStore

__all__ = ["JsonRunStore", "RunStore"]
