from routefilter.plugins.registry import (
    Filter,
    Plugin,
    PluginFactory,
    PluginRegistry,
    RawParameters,
    Registry,
)

__all__ = [
    "Filter",
    "Plugin",
    "PluginFactory",
    "PluginRegistry",
    "RawParameters",
    "Registry",
]
