"""
Candidate filtering for request routing.

Decision trees compose leaf criteria into a flow chart that narrows the
pods eligible for a request.
"""

from routefilter.filtering.criteria import (
    KVCacheUtilizationFilter,
    LowQueueFilter,
    ModelAffinityFilter,
    PassThroughFilter,
)
from routefilter.filtering.decision_tree import (
    DECISION_TREE_FILTER_TYPE,
    DecisionTreeFilter,
    FilterEntry,
    FilterSpec,
    Outcome,
    build_decision_tree,
    decision_tree_factory,
    evaluate,
    parse_filter_spec,
    select_next,
)

__all__ = [
    # Decision tree
    "DECISION_TREE_FILTER_TYPE",
    "DecisionTreeFilter",
    "FilterEntry",
    "FilterSpec",
    "Outcome",
    "build_decision_tree",
    "decision_tree_factory",
    "evaluate",
    "parse_filter_spec",
    "select_next",
    # Leaf criteria
    "KVCacheUtilizationFilter",
    "LowQueueFilter",
    "ModelAffinityFilter",
    "PassThroughFilter",
]
