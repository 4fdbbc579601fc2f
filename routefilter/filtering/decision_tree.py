"""
Decision Tree Filter: Flow-Chart Composition of Filters.

A decision tree applies its current filter, then picks a successor based on
whether the result is empty. Successors are filters themselves (leaves or
nested trees), so a whole tree is pluggable wherever one filter is expected.

INVARIANTS:
- Non-empty result: on_success if set, else on_either. The successor
  receives the FILTERED pods.
- Empty result: on_failure if set, else on_either. The successor receives
  the ORIGINAL input pods, not the empty result.
- No applicable successor: the node returns its own result (terminal).
- Exactly one root-to-terminal path is executed per evaluation.
- Trees are immutable once built and safe to share across threads.

Building validates the whole configuration up front. Any structural problem
raises ConfigError and no partial tree is returned.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from routefilter.log_util import TRACE
from routefilter.models.failure import ConfigError
from routefilter.models.scheduling import CycleState, LLMRequest, Pod, SchedulingContext
from routefilter.plugins.registry import Filter, RawParameters, Registry

logger = logging.getLogger(__name__)

DECISION_TREE_FILTER_TYPE = "decision-tree"


# =============================================================================
# DECLARATIVE CONFIGURATION
# =============================================================================


class FilterEntry(BaseModel):
    """One slot of a tree: a named reference OR a nested tree, never both."""

    model_config = ConfigDict(extra="forbid")

    reference: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reference", "pluginRef"),
    )
    decision_tree: "FilterSpec | None" = Field(
        default=None,
        validation_alias=AliasChoices("decisionTree", "decision_tree"),
    )


class FilterSpec(BaseModel):
    """Unresolved tree as it appears in a configuration document."""

    model_config = ConfigDict(extra="forbid")

    current: FilterEntry | None = None
    on_success: FilterEntry | None = Field(
        default=None,
        validation_alias=AliasChoices("onSuccess", "nextOnSuccess", "on_success"),
    )
    on_failure: FilterEntry | None = Field(
        default=None,
        validation_alias=AliasChoices("onFailure", "nextOnFailure", "on_failure"),
    )
    on_either: FilterEntry | None = Field(
        default=None,
        validation_alias=AliasChoices("onEither", "nextOnSuccessOrFailure", "on_either"),
    )


FilterEntry.model_rebuild()
FilterSpec.model_rebuild()


# Document key for each successor slot, used in error paths
_SUCCESSOR_KEYS = {
    "on_success": "onSuccess",
    "on_failure": "onFailure",
    "on_either": "onEither",
}


# =============================================================================
# SUCCESSOR SELECTION
# =============================================================================


class Outcome(str, Enum):
    """Result of applying a node's current filter."""

    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def of(cls, filtered: Sequence[Pod]) -> "Outcome":
        return cls.SUCCESS if filtered else cls.FAILURE


def select_next(
    outcome: Outcome,
    on_success: Filter | None,
    on_failure: Filter | None,
    on_either: Filter | None,
) -> Filter | None:
    """
    Pick the successor for an outcome.

    The outcome-specific slot always wins; on_either only fills whichever
    branch lacks a dedicated slot. None means the node is terminal.
    """
    if outcome is Outcome.SUCCESS:
        return on_success if on_success is not None else on_either
    return on_failure if on_failure is not None else on_either


# =============================================================================
# TREE NODE
# =============================================================================


@dataclass(frozen=True)
class DecisionTreeFilter:
    """
    A node of the decision tree.

    Identified by its current filter: `plugin_type` and `name` delegate to it.
    """

    current: Filter
    on_success: Filter | None = None
    on_failure: Filter | None = None
    on_either: Filter | None = None

    @property
    def plugin_type(self) -> str:
        return self.current.plugin_type

    @property
    def name(self) -> str:
        return self.current.name

    def next_for(self, outcome: Outcome) -> Filter | None:
        return select_next(outcome, self.on_success, self.on_failure, self.on_either)

    def filter(
        self,
        ctx: SchedulingContext,
        cycle_state: CycleState,
        request: LLMRequest,
        pods: Sequence[Pod],
    ) -> list[Pod]:
        """Apply the current filter and hand off to the selected successor."""
        filtered = self.current.filter(ctx, cycle_state, request, pods)
        outcome = Outcome.of(filtered)
        next_filter = self.next_for(outcome)

        if next_filter is None:
            # No succeeding filter to run
            return filtered

        logger.log(
            TRACE,
            "FILTER_SUCCEEDED" if outcome is Outcome.SUCCESS else "FILTER_FAILED",
            extra={
                "request_id": ctx.request_id,
                "filter": self.plugin_type,
                "filter_name": self.name,
                "next": next_filter.plugin_type,
                "next_name": next_filter.name,
                "filtered_pod_count": len(filtered),
            },
        )

        if outcome is Outcome.SUCCESS:
            return next_filter.filter(ctx, cycle_state, request, filtered)
        # On failure the successor retries the full input
        return next_filter.filter(ctx, cycle_state, request, pods)


def evaluate(
    node: Filter | None,
    ctx: SchedulingContext,
    cycle_state: CycleState,
    request: LLMRequest,
    pods: Sequence[Pod],
) -> list[Pod]:
    """Evaluate a tree (or any filter). An absent node yields no pods."""
    if node is None:
        return []
    return node.filter(ctx, cycle_state, request, pods)


# =============================================================================
# BUILDER
# =============================================================================


def build_decision_tree(spec: FilterSpec, registry: Registry) -> DecisionTreeFilter:
    """
    Resolve a FilterSpec into an immutable tree.

    Named references are looked up in `registry`; nested specs are built
    recursively.

    Raises:
        ConfigError: On a missing current entry, an ambiguous or empty entry,
            an undefined reference, a reference to a non-filter, or a spec
            that contains itself
    """
    return _build_node(spec, registry, path="", ancestry=frozenset())


def _build_node(
    spec: FilterSpec,
    registry: Registry,
    path: str,
    ancestry: frozenset[int],
) -> DecisionTreeFilter:
    if id(spec) in ancestry:
        raise ConfigError(
            "cycle detected: decision tree contains itself",
            path=path or "<root>",
        )
    ancestry = ancestry | {id(spec)}

    if spec.current is None:
        raise ConfigError(
            "missing required current filter",
            path=_join(path, "current"),
        )

    current = _build_entry(spec.current, registry, _join(path, "current"), ancestry)

    resolved: dict[str, Filter | None] = {}
    for slot, key in _SUCCESSOR_KEYS.items():
        entry: FilterEntry | None = getattr(spec, slot)
        if entry is None:
            resolved[slot] = None
            continue
        resolved[slot] = _build_entry(entry, registry, _join(path, key), ancestry)

    return DecisionTreeFilter(
        current=current,
        on_success=resolved["on_success"],
        on_failure=resolved["on_failure"],
        on_either=resolved["on_either"],
    )


def _build_entry(
    entry: FilterEntry,
    registry: Registry,
    path: str,
    ancestry: frozenset[int],
) -> Filter:
    if entry.reference is not None and entry.decision_tree is not None:
        raise ConfigError(
            "ambiguous entry: both reference and nested tree specified",
            path=path,
        )

    if entry.reference is not None:
        instance = registry.lookup(entry.reference)
        if instance is None:
            raise ConfigError(f"undefined reference: {entry.reference}", path=path)
        if not isinstance(instance, Filter):
            raise ConfigError(f"{entry.reference} is not a filter", path=path)
        return instance

    if entry.decision_tree is not None:
        return _build_node(
            entry.decision_tree,
            registry,
            _join(path, "decisionTree"),
            ancestry,
        )

    raise ConfigError(
        "entry must specify either a reference or a nested tree",
        path=path,
    )


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


# =============================================================================
# PLUGIN FACTORY
# =============================================================================


def parse_filter_spec(name: str, parameters: RawParameters) -> FilterSpec:
    """
    Parse raw decision-tree parameters.

    Raises:
        ConfigError: If the parameters are not valid JSON or do not match
            the decision-tree schema
    """
    try:
        if parameters is None:
            return FilterSpec()
        if isinstance(parameters, str | bytes):
            return FilterSpec.model_validate_json(parameters)
        if isinstance(parameters, Mapping):
            return FilterSpec.model_validate(dict(parameters))
    except ValidationError as e:
        raise ConfigError(
            f"failed to parse the parameters of the '{name}' filter",
            detail=str(e),
        ) from e

    raise ConfigError(
        f"failed to parse the parameters of the '{name}' filter",
        detail=f"expected an object, got {type(parameters).__name__}",
    )


def decision_tree_factory(
    name: str,
    parameters: RawParameters,
    registry: Registry,
) -> DecisionTreeFilter:
    """Plugin factory registered under DECISION_TREE_FILTER_TYPE."""
    spec = parse_filter_spec(name, parameters)
    tree = build_decision_tree(spec, registry)
    logger.info(
        "DECISION_TREE_BUILT",
        extra={"plugin_name": name, "root": tree.plugin_type, "root_name": tree.name},
    )
    return tree
