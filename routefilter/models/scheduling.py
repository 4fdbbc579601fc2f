"""
Scheduling types passed through the filter tree.

The decision tree never inspects these. They are forwarded unchanged to
every filter invocation; only leaf criteria read them.
"""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class PodMetrics:
    """Load snapshot for a single pod."""

    waiting_queue_size: int = 0
    # Fraction of KV cache in use, 0.0-1.0
    kv_cache_usage: float = 0.0
    active_models: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Pod:
    """A backend serving instance considered for a request."""

    name: str
    address: str = ""
    namespace: str = "default"
    metrics: PodMetrics = field(default_factory=PodMetrics)


@dataclass(frozen=True)
class LLMRequest:
    """An incoming inference request to be routed."""

    request_id: str
    target_model: str = ""
    headers: dict[str, str] = field(default_factory=dict, hash=False)


class CycleState:
    """
    Per-request scratch store shared by the filters of one scheduling cycle.

    Never shared across concurrent evaluations.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def read(self, key: str) -> Any:
        """
        Read a value written earlier in this cycle.

        Raises:
            KeyError: If nothing was written under `key`
        """
        return self._data[key]

    def write(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data


@dataclass
class SchedulingContext:
    """
    Cancellation and deadline carrier for one evaluation.

    The tree forwards it to every filter and never checks it itself.
    Responsiveness to cancellation is up to the leaf filters.
    """

    request_id: str = ""
    deadline: datetime | None = None
    cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self.cancelled.set()

    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def deadline_exceeded(self, now: datetime | None = None) -> bool:
        if self.deadline is None:
            return False
        return (now or datetime.now(UTC)) >= self.deadline
