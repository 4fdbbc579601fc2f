"""
Filter API endpoints.

Evaluates the active decision tree for one request and reloads the
scheduler configuration.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from routefilter.models.scheduling import (
    CycleState,
    LLMRequest,
    Pod,
    PodMetrics,
    SchedulingContext,
)
from routefilter.services.active_filter import ActiveFilter, get_active_filter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/filter", tags=["filter"])


class PodModel(BaseModel):
    """A candidate pod and its load snapshot."""

    name: str = Field(..., min_length=1)
    address: str = ""
    namespace: str = "default"
    waiting_queue_size: int = Field(default=0, ge=0)
    kv_cache_usage: float = Field(default=0.0, ge=0.0, le=1.0)
    active_models: list[str] = Field(default_factory=list)

    def to_pod(self) -> Pod:
        return Pod(
            name=self.name,
            address=self.address,
            namespace=self.namespace,
            metrics=PodMetrics(
                waiting_queue_size=self.waiting_queue_size,
                kv_cache_usage=self.kv_cache_usage,
                active_models=frozenset(self.active_models),
            ),
        )

    @classmethod
    def from_pod(cls, pod: Pod) -> "PodModel":
        return cls(
            name=pod.name,
            address=pod.address,
            namespace=pod.namespace,
            waiting_queue_size=pod.metrics.waiting_queue_size,
            kv_cache_usage=pod.metrics.kv_cache_usage,
            active_models=sorted(pod.metrics.active_models),
        )


class RequestModel(BaseModel):
    """The inference request being routed."""

    request_id: str = Field(..., min_length=1)
    target_model: str = ""
    headers: dict[str, str] = Field(default_factory=dict)


class FilterRequest(BaseModel):
    """Request body for filter evaluation."""

    request: RequestModel
    pods: list[PodModel] = Field(default_factory=list)


class FilterResponse(BaseModel):
    """Pods that remain eligible, in input order."""

    pods: list[PodModel]
    count: int


class ReloadResponse(BaseModel):
    """Response model for a configuration reload."""

    status: str
    filter: str


@router.post("", response_model=FilterResponse)
async def run_filter(
    body: FilterRequest,
    holder: Annotated[ActiveFilter, Depends(get_active_filter)],
) -> FilterResponse:
    """
    Narrow the candidate pods for a request using the active tree.

    Returns 503 (not_configured) when no configuration has been loaded.
    """
    request = LLMRequest(
        request_id=body.request.request_id,
        target_model=body.request.target_model,
        headers=dict(body.request.headers),
    )
    ctx = SchedulingContext(request_id=request.request_id)
    pods = [pod.to_pod() for pod in body.pods]

    result = holder.run(ctx, CycleState(), request, pods)

    logger.debug(
        "FILTER_EVALUATED",
        extra={
            "request_id": request.request_id,
            "input_count": len(pods),
            "output_count": len(result),
        },
    )
    return FilterResponse(
        pods=[PodModel.from_pod(pod) for pod in result],
        count=len(result),
    )


@router.post("/reload", response_model=ReloadResponse)
async def reload_filter(
    document: Annotated[dict[str, Any], Body()],
    holder: Annotated[ActiveFilter, Depends(get_active_filter)],
) -> ReloadResponse:
    """
    Build a new tree from a scheduler configuration and make it active.

    Returns 422 (invalid_config) on a malformed configuration; the
    previously active tree keeps serving.
    """
    root = holder.reload(document)
    return ReloadResponse(status="reloaded", filter=f"{root.plugin_type}/{root.name}")
