from collections.abc import Callable, Sequence

import pytest

from routefilter.models.scheduling import (
    CycleState,
    LLMRequest,
    Pod,
    PodMetrics,
    SchedulingContext,
)
from routefilter.services.active_filter import active_filter


class StubFilter:
    """Leaf filter that keeps pods matching a predicate and records its inputs."""

    def __init__(
        self,
        name: str,
        keep: Callable[[Pod], bool],
        plugin_type: str = "stub",
    ) -> None:
        self._name = name
        self._plugin_type = plugin_type
        self.keep = keep
        self.calls: list[list[str]] = []
        self.contexts: list[tuple[SchedulingContext, CycleState, LLMRequest]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def plugin_type(self) -> str:
        return self._plugin_type

    def filter(
        self,
        ctx: SchedulingContext,
        cycle_state: CycleState,
        request: LLMRequest,
        pods: Sequence[Pod],
    ) -> list[Pod]:
        self.calls.append([pod.name for pod in pods])
        self.contexts.append((ctx, cycle_state, request))
        return [pod for pod in pods if self.keep(pod)]


@pytest.fixture(autouse=True)
def reset_active_filter():
    """Every test starts with no filter configured."""
    active_filter.clear()
    yield
    active_filter.clear()


@pytest.fixture
def make_filter() -> Callable[..., StubFilter]:
    """Build a recording stub filter."""

    def _make(
        name: str,
        keep: Callable[[Pod], bool] = lambda _pod: True,
        plugin_type: str = "stub",
    ) -> StubFilter:
        return StubFilter(name, keep, plugin_type)

    return _make


@pytest.fixture
def pods() -> list[Pod]:
    """Three pods with distinct load profiles."""
    return [
        Pod(
            name="p1",
            address="10.0.0.1",
            metrics=PodMetrics(
                waiting_queue_size=200,
                kv_cache_usage=0.95,
                active_models=frozenset({"llama-3"}),
            ),
        ),
        Pod(
            name="p2",
            address="10.0.0.2",
            metrics=PodMetrics(
                waiting_queue_size=5,
                kv_cache_usage=0.30,
                active_models=frozenset({"llama-3", "mistral"}),
            ),
        ),
        Pod(
            name="p3",
            address="10.0.0.3",
            metrics=PodMetrics(
                waiting_queue_size=40,
                kv_cache_usage=0.85,
                active_models=frozenset({"mistral"}),
            ),
        ),
    ]


@pytest.fixture
def ctx() -> SchedulingContext:
    return SchedulingContext(request_id="req-1")


@pytest.fixture
def cycle_state() -> CycleState:
    return CycleState()


@pytest.fixture
def llm_request() -> LLMRequest:
    return LLMRequest(request_id="req-1", target_model="llama-3")
