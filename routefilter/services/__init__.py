from routefilter.services.active_filter import ActiveFilter, active_filter, get_active_filter

__all__ = [
    "ActiveFilter",
    "active_filter",
    "get_active_filter",
]
