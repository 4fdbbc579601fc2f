"""
Built-in leaf criteria.

Each criterion is pure and deterministic:
- Monotonic (only removes pods, never adds)
- Order-preserving (survivors keep their input order)
- Same request + pods → same result

Criteria never raise at evaluation time. An empty result is a normal
outcome that the decision tree branches on.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from routefilter.models.failure import ConfigError
from routefilter.models.scheduling import CycleState, LLMRequest, Pod, SchedulingContext
from routefilter.plugins.registry import RawParameters, Registry

PASS_THROUGH_FILTER_TYPE = "pass-through"
LOW_QUEUE_FILTER_TYPE = "low-queue-filter"
KV_CACHE_FILTER_TYPE = "kv-cache-utilization-filter"
MODEL_AFFINITY_FILTER_TYPE = "model-affinity-filter"

DEFAULT_QUEUE_THRESHOLD = 128
DEFAULT_KV_CACHE_THRESHOLD = 0.8


@dataclass(frozen=True)
class PassThroughFilter:
    """Returns its input unchanged."""

    name: str = PASS_THROUGH_FILTER_TYPE

    @property
    def plugin_type(self) -> str:
        return PASS_THROUGH_FILTER_TYPE

    def filter(
        self,
        ctx: SchedulingContext,  # noqa: ARG002
        cycle_state: CycleState,  # noqa: ARG002
        request: LLMRequest,  # noqa: ARG002
        pods: Sequence[Pod],
    ) -> list[Pod]:
        return list(pods)


@dataclass(frozen=True)
class LowQueueFilter:
    """Keeps pods whose waiting queue is at or below the threshold."""

    name: str = LOW_QUEUE_FILTER_TYPE
    threshold: int = DEFAULT_QUEUE_THRESHOLD

    @property
    def plugin_type(self) -> str:
        return LOW_QUEUE_FILTER_TYPE

    def filter(
        self,
        ctx: SchedulingContext,  # noqa: ARG002
        cycle_state: CycleState,  # noqa: ARG002
        request: LLMRequest,  # noqa: ARG002
        pods: Sequence[Pod],
    ) -> list[Pod]:
        return [pod for pod in pods if pod.metrics.waiting_queue_size <= self.threshold]


@dataclass(frozen=True)
class KVCacheUtilizationFilter:
    """Keeps pods whose KV cache usage is at or below the threshold."""

    name: str = KV_CACHE_FILTER_TYPE
    threshold: float = DEFAULT_KV_CACHE_THRESHOLD

    @property
    def plugin_type(self) -> str:
        return KV_CACHE_FILTER_TYPE

    def filter(
        self,
        ctx: SchedulingContext,  # noqa: ARG002
        cycle_state: CycleState,  # noqa: ARG002
        request: LLMRequest,  # noqa: ARG002
        pods: Sequence[Pod],
    ) -> list[Pod]:
        return [pod for pod in pods if pod.metrics.kv_cache_usage <= self.threshold]


@dataclass(frozen=True)
class ModelAffinityFilter:
    """
    Keeps pods that already serve the requested model.

    A request without a target model matches no pod.
    """

    name: str = MODEL_AFFINITY_FILTER_TYPE

    @property
    def plugin_type(self) -> str:
        return MODEL_AFFINITY_FILTER_TYPE

    def filter(
        self,
        ctx: SchedulingContext,  # noqa: ARG002
        cycle_state: CycleState,  # noqa: ARG002
        request: LLMRequest,
        pods: Sequence[Pod],
    ) -> list[Pod]:
        if not request.target_model:
            return []
        return [pod for pod in pods if request.target_model in pod.metrics.active_models]


# =============================================================================
# FACTORIES
# =============================================================================


def _parameters(name: str, parameters: RawParameters) -> Mapping[str, Any]:
    if parameters is None:
        return {}
    if isinstance(parameters, Mapping):
        return parameters
    raise ConfigError(
        f"failed to parse the parameters of the '{name}' filter",
        detail="criteria parameters must be an object",
    )


def _number(name: str, params: Mapping[str, Any], key: str, default: float) -> float:
    value = params.get(key, default)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigError(
            f"invalid '{key}' for the '{name}' filter",
            detail=f"expected a number, got {value!r}",
        )
    if not math.isfinite(value):
        raise ConfigError(
            f"invalid '{key}' for the '{name}' filter",
            detail=f"must be finite, got {value!r}",
        )
    if value < 0:
        raise ConfigError(
            f"invalid '{key}' for the '{name}' filter",
            detail=f"must be non-negative, got {value!r}",
        )
    return value


def _reject_unknown(name: str, params: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise ConfigError(
            f"unknown parameters for the '{name}' filter: {', '.join(unknown)}",
        )


def pass_through_factory(
    name: str,
    parameters: RawParameters,
    registry: Registry,  # noqa: ARG001
) -> PassThroughFilter:
    _reject_unknown(name, _parameters(name, parameters), set())
    return PassThroughFilter(name=name)


def low_queue_factory(
    name: str,
    parameters: RawParameters,
    registry: Registry,  # noqa: ARG001
) -> LowQueueFilter:
    params = _parameters(name, parameters)
    _reject_unknown(name, params, {"threshold"})
    threshold = _number(name, params, "threshold", DEFAULT_QUEUE_THRESHOLD)
    if threshold != int(threshold):
        raise ConfigError(
            f"invalid 'threshold' for the '{name}' filter",
            detail=f"expected an integer, got {threshold!r}",
        )
    return LowQueueFilter(name=name, threshold=int(threshold))


def kv_cache_factory(
    name: str,
    parameters: RawParameters,
    registry: Registry,  # noqa: ARG001
) -> KVCacheUtilizationFilter:
    params = _parameters(name, parameters)
    _reject_unknown(name, params, {"threshold"})
    threshold = _number(name, params, "threshold", DEFAULT_KV_CACHE_THRESHOLD)
    if threshold > 1.0:
        raise ConfigError(
            f"invalid 'threshold' for the '{name}' filter",
            detail=f"must be between 0.0 and 1.0, got {threshold!r}",
        )
    return KVCacheUtilizationFilter(name=name, threshold=float(threshold))


def model_affinity_factory(
    name: str,
    parameters: RawParameters,
    registry: Registry,  # noqa: ARG001
) -> ModelAffinityFilter:
    _reject_unknown(name, _parameters(name, parameters), set())
    return ModelAffinityFilter(name=name)
