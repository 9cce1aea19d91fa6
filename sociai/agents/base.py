from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sociai.clients.base import GenerativeClient


class Agent(ABC):
    """Abstract base class for all agents.

    Provides a standard ``run`` interface, the shared generative client and
    support for attaching a ``trace_id`` used for logging.
    """

    def __init__(self, client: GenerativeClient) -> None:
        self._client = client
        self._trace_id: str | None = None

    def with_trace(self, trace_id: str) -> "Agent":
        """Attach a traceId for downstream logging."""

        self._trace_id = trace_id
        return self

    @abstractmethod
    async def run(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the agent and return its structured output."""


__all__ = ["Agent"]
