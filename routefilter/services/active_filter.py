"""
Active Filter: The Tree Serving Requests Right Now.

"No filter configured" is an explicit state here, not a null tree that
answers with sentinel values. Requests that arrive in that state fail with
NoFilterConfiguredError.

INVARIANTS:
- Trees are never mutated in place; a reload builds a new tree and swaps
  the reference atomically
- A failed reload leaves the previous tree active
- In-flight evaluations finish against the tree they started with
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any

from routefilter.filtering.decision_tree import evaluate
from routefilter.models.failure import NoFilterConfiguredError
from routefilter.models.scheduling import CycleState, LLMRequest, Pod, SchedulingContext
from routefilter.plugins.loader import load_scheduler_config
from routefilter.plugins.registry import Filter, PluginFactory

logger = logging.getLogger(__name__)


@dataclass
class ActiveFilter:
    """Thread-safe holder for the root filter."""

    _filter: Filter | None = None
    _lock: Lock = field(default_factory=Lock)

    def current(self) -> Filter | None:
        with self._lock:
            return self._filter

    @property
    def is_configured(self) -> bool:
        return self.current() is not None

    def swap(self, new_filter: Filter) -> Filter | None:
        """Install `new_filter` and return the one it replaced."""
        with self._lock:
            previous = self._filter
            self._filter = new_filter

        logger.info(
            "ACTIVE_FILTER_SWAPPED",
            extra={
                "filter": new_filter.plugin_type,
                "filter_name": new_filter.name,
                "replaced": previous is not None,
            },
        )
        return previous

    def clear(self) -> Filter | None:
        with self._lock:
            previous = self._filter
            self._filter = None
        return previous

    def reload(
        self,
        document: Mapping[str, Any] | str | bytes | Path,
        factories: Mapping[str, PluginFactory] | None = None,
    ) -> Filter:
        """
        Build a configuration and make its root filter active.

        Raises:
            ConfigError: If the configuration is invalid. The previously
                active filter stays in place.
        """
        loaded = load_scheduler_config(document, factories)
        self.swap(loaded.root)
        return loaded.root

    def run(
        self,
        ctx: SchedulingContext,
        cycle_state: CycleState,
        request: LLMRequest,
        pods: Sequence[Pod],
    ) -> list[Pod]:
        """
        Evaluate the active filter for one request.

        Raises:
            NoFilterConfiguredError: If no filter has been loaded
        """
        active = self.current()
        if active is None:
            raise NoFilterConfiguredError()
        return evaluate(active, ctx, cycle_state, request, pods)


active_filter = ActiveFilter()


def get_active_filter() -> ActiveFilter:
    """FastAPI dependency returning the process-wide holder."""
    return active_filter
