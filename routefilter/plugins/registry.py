"""
Plugin interfaces and the named plugin registry.

A filter is anything exposing `plugin_type`, `name` and
`filter(ctx, cycle_state, request, pods)`. Decision trees satisfy the same
protocol, so a tree can be registered by name and referenced wherever a
single filter is expected.

The registry is read-only from the tree builder's point of view: it is
queried during build and never afterwards.
"""

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from routefilter.models.failure import ConfigError
from routefilter.models.scheduling import CycleState, LLMRequest, Pod, SchedulingContext

logger = logging.getLogger(__name__)


@runtime_checkable
class Plugin(Protocol):
    """Anything that can be registered by name."""

    @property
    def plugin_type(self) -> str: ...

    @property
    def name(self) -> str: ...


@runtime_checkable
class Filter(Plugin, Protocol):
    """A plugin that narrows a candidate set."""

    def filter(
        self,
        ctx: SchedulingContext,
        cycle_state: CycleState,
        request: LLMRequest,
        pods: Sequence[Pod],
    ) -> list[Pod]: ...


class Registry(Protocol):
    """Name to plugin lookup consumed by the tree builder."""

    def lookup(self, name: str) -> Plugin | None: ...


# Parameters arrive as an already-decoded mapping or as raw JSON
RawParameters = Mapping[str, Any] | str | bytes | None

PluginFactory = Callable[[str, RawParameters, Registry], Plugin]


class PluginRegistry:
    """
    Dict-backed registry of plugin instances.

    Names are unique. Registration happens at configuration load; lookups
    happen during tree build.
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    def register(self, plugin: Plugin, name: str | None = None) -> None:
        """
        Register a plugin under `name` (defaults to the plugin's own name).

        Raises:
            ConfigError: If the name is empty or already registered
        """
        key = name if name is not None else plugin.name
        if not key:
            raise ConfigError("plugin name must not be empty")
        if key in self._plugins:
            raise ConfigError(f"duplicate plugin name: {key}")

        self._plugins[key] = plugin
        logger.debug(
            "PLUGIN_REGISTERED",
            extra={"plugin_name": key, "plugin_type": plugin.plugin_type},
        )

    def lookup(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def names(self) -> list[str]:
        return list(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def __iter__(self) -> Iterator[str]:
        return iter(self._plugins)
