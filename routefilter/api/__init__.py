from routefilter.api.filter import router as filter_router
from routefilter.api.health import router as health_router

__all__ = [
    "filter_router",
    "health_router",
]
