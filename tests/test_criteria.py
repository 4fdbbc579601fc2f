"""
Tests for built-in leaf criteria.

These tests verify:
- Each criterion keeps exactly the pods it should
- Survivors keep their input order (monotonic, order-preserving)
- Factories validate parameters and raise ConfigError
"""

import json

import pytest

from routefilter.filtering.criteria import (
    DEFAULT_KV_CACHE_THRESHOLD,
    DEFAULT_QUEUE_THRESHOLD,
    KVCacheUtilizationFilter,
    LowQueueFilter,
    ModelAffinityFilter,
    PassThroughFilter,
    kv_cache_factory,
    low_queue_factory,
    model_affinity_factory,
    pass_through_factory,
)
from routefilter.models.failure import ConfigError
from routefilter.models.scheduling import LLMRequest
from routefilter.plugins.registry import Filter, PluginRegistry


def _names(pods) -> list[str]:
    return [pod.name for pod in pods]


class TestPassThrough:
    def test_returns_input_unchanged(self, pods, ctx, cycle_state, llm_request) -> None:
        result = PassThroughFilter().filter(ctx, cycle_state, llm_request, pods)
        assert result == pods

    def test_returns_new_list(self, pods, ctx, cycle_state, llm_request) -> None:
        result = PassThroughFilter().filter(ctx, cycle_state, llm_request, pods)
        assert result is not pods


class TestLowQueue:
    def test_keeps_pods_at_or_below_threshold(self, pods, ctx, cycle_state, llm_request) -> None:
        result = LowQueueFilter(threshold=40).filter(ctx, cycle_state, llm_request, pods)
        assert _names(result) == ["p2", "p3"]

    def test_default_threshold(self, pods, ctx, cycle_state, llm_request) -> None:
        criterion = LowQueueFilter()
        assert criterion.threshold == DEFAULT_QUEUE_THRESHOLD
        assert _names(criterion.filter(ctx, cycle_state, llm_request, pods)) == ["p2", "p3"]

    def test_can_return_empty(self, pods, ctx, cycle_state, llm_request) -> None:
        assert LowQueueFilter(threshold=0).filter(ctx, cycle_state, llm_request, pods) == []


class TestKVCacheUtilization:
    def test_keeps_pods_at_or_below_threshold(self, pods, ctx, cycle_state, llm_request) -> None:
        result = KVCacheUtilizationFilter(threshold=0.85).filter(
            ctx, cycle_state, llm_request, pods
        )
        assert _names(result) == ["p2", "p3"]

    def test_default_threshold(self, pods, ctx, cycle_state, llm_request) -> None:
        criterion = KVCacheUtilizationFilter()
        assert criterion.threshold == DEFAULT_KV_CACHE_THRESHOLD
        assert _names(criterion.filter(ctx, cycle_state, llm_request, pods)) == ["p2"]


class TestModelAffinity:
    def test_keeps_pods_serving_model(self, pods, ctx, cycle_state) -> None:
        request = LLMRequest(request_id="r", target_model="mistral")
        result = ModelAffinityFilter().filter(ctx, cycle_state, request, pods)
        assert _names(result) == ["p2", "p3"]

    def test_unknown_model_matches_nothing(self, pods, ctx, cycle_state) -> None:
        request = LLMRequest(request_id="r", target_model="gpt-neo")
        assert ModelAffinityFilter().filter(ctx, cycle_state, request, pods) == []

    def test_no_target_model_matches_nothing(self, pods, ctx, cycle_state) -> None:
        request = LLMRequest(request_id="r")
        assert ModelAffinityFilter().filter(ctx, cycle_state, request, pods) == []


class TestFilterProtocol:
    @pytest.mark.parametrize(
        "criterion",
        [PassThroughFilter(), LowQueueFilter(), KVCacheUtilizationFilter(), ModelAffinityFilter()],
    )
    def test_criteria_satisfy_filter_protocol(self, criterion) -> None:
        assert isinstance(criterion, Filter)

    def test_plugin_type_is_fixed_name_is_configurable(self) -> None:
        criterion = LowQueueFilter(name="short-queues")
        assert criterion.plugin_type == "low-queue-filter"
        assert criterion.name == "short-queues"


class TestFactories:
    @pytest.fixture
    def registry(self) -> PluginRegistry:
        return PluginRegistry()

    def test_low_queue_factory(self, registry) -> None:
        criterion = low_queue_factory("short", {"threshold": 10}, registry)
        assert criterion == LowQueueFilter(name="short", threshold=10)

    def test_low_queue_factory_accepts_integral_float(self, registry) -> None:
        assert low_queue_factory("short", {"threshold": 10.0}, registry).threshold == 10

    def test_low_queue_factory_rejects_fractional(self, registry) -> None:
        with pytest.raises(ConfigError, match="invalid 'threshold'"):
            low_queue_factory("short", {"threshold": 10.5}, registry)

    def test_low_queue_factory_defaults(self, registry) -> None:
        assert low_queue_factory("short", None, registry).threshold == DEFAULT_QUEUE_THRESHOLD

    @pytest.mark.parametrize("bad", ["10", True, None, -1])
    def test_low_queue_factory_rejects_bad_threshold(self, registry, bad) -> None:
        with pytest.raises(ConfigError, match="invalid 'threshold'"):
            low_queue_factory("short", {"threshold": bad}, registry)

    def test_kv_cache_factory(self, registry) -> None:
        criterion = kv_cache_factory("kv", {"threshold": 0.5}, registry)
        assert criterion == KVCacheUtilizationFilter(name="kv", threshold=0.5)

    def test_kv_cache_factory_rejects_above_one(self, registry) -> None:
        with pytest.raises(ConfigError, match="invalid 'threshold'"):
            kv_cache_factory("kv", {"threshold": 1.5}, registry)

    @pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
    def test_low_queue_factory_rejects_non_finite(self, registry, bad) -> None:
        with pytest.raises(ConfigError, match="invalid 'threshold'"):
            low_queue_factory("short", {"threshold": bad}, registry)

    @pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
    def test_kv_cache_factory_rejects_non_finite(self, registry, bad) -> None:
        with pytest.raises(ConfigError, match="invalid 'threshold'"):
            kv_cache_factory("kv", {"threshold": bad}, registry)

    def test_overflowing_json_threshold_rejected(self, registry) -> None:
        # 1e999 decodes to inf
        params = json.loads('{"threshold": 1e999}')
        with pytest.raises(ConfigError, match="invalid 'threshold'"):
            low_queue_factory("short", params, registry)

    def test_unknown_parameter_rejected(self, registry) -> None:
        with pytest.raises(ConfigError, match="unknown parameters for the 'kv' filter: limit"):
            kv_cache_factory("kv", {"limit": 0.5}, registry)

    def test_parameterless_factories(self, registry) -> None:
        assert pass_through_factory("id", None, registry).name == "id"
        assert model_affinity_factory("affinity", {}, registry).name == "affinity"

    def test_parameterless_factory_rejects_parameters(self, registry) -> None:
        with pytest.raises(ConfigError, match="unknown parameters"):
            pass_through_factory("id", {"threshold": 1}, registry)

    def test_raw_json_parameters_rejected(self, registry) -> None:
        with pytest.raises(ConfigError, match="failed to parse"):
            low_queue_factory("short", '{"threshold": 1}', registry)
