from routefilter.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    ConfigError,
    FailureDetail,
    FailureKind,
    KnownError,
    NoFilterConfiguredError,
    OutcomeType,
    create_known_failure,
    create_unknown_failure,
    finalize_response,
)
from routefilter.models.scheduling import (
    CycleState,
    LLMRequest,
    Pod,
    PodMetrics,
    SchedulingContext,
)

__all__ = [
    "ApiResponse",
    "ConfigError",
    "CycleState",
    "FailureDetail",
    "FailureKind",
    "KnownError",
    "LLMRequest",
    "NoFilterConfiguredError",
    "OutcomeType",
    "Pod",
    "PodMetrics",
    "STANDARD_MESSAGES",
    "STANDARD_SUGGESTIONS",
    "SchedulingContext",
    "create_known_failure",
    "create_unknown_failure",
    "finalize_response",
]
