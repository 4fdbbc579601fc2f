"""
Scheduler configuration loader.

Turns a scheduler configuration document into plugin instances:

    {
        "plugins": [
            {"name": "low-queue", "type": "low-queue-filter", "parameters": {"threshold": 64}},
            {"name": "tree", "type": "decision-tree", "parameters": {...}}
        ],
        "filter": "tree"
    }

Plugins are instantiated in declaration order. A decision tree may refer to
a plugin declared after it; that plugin is instantiated on demand. A chain
of references that re-enters a plugin still under construction is rejected
as a cycle instead of recursing forever at evaluation time.

Every problem surfaces as ConfigError before any evaluation happens.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from routefilter.filtering.criteria import (
    KV_CACHE_FILTER_TYPE,
    LOW_QUEUE_FILTER_TYPE,
    MODEL_AFFINITY_FILTER_TYPE,
    PASS_THROUGH_FILTER_TYPE,
    kv_cache_factory,
    low_queue_factory,
    model_affinity_factory,
    pass_through_factory,
)
from routefilter.filtering.decision_tree import (
    DECISION_TREE_FILTER_TYPE,
    decision_tree_factory,
)
from routefilter.models.failure import ConfigError
from routefilter.plugins.registry import Filter, Plugin, PluginFactory, PluginRegistry

logger = logging.getLogger(__name__)


class PluginSpec(BaseModel):
    """One plugin declaration."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    parameters: dict[str, Any] | None = None


class SchedulerConfig(BaseModel):
    """Top-level scheduler configuration document."""

    model_config = ConfigDict(extra="forbid")

    plugins: list[PluginSpec] = Field(default_factory=list)
    filter: str = Field(..., min_length=1, description="Name of the root filter plugin")


@dataclass(frozen=True)
class LoadedConfig:
    """Result of a successful load."""

    registry: PluginRegistry
    root: Filter


def default_factories() -> dict[str, PluginFactory]:
    """Plugin types available to configuration documents."""
    return {
        DECISION_TREE_FILTER_TYPE: decision_tree_factory,
        PASS_THROUGH_FILTER_TYPE: pass_through_factory,
        LOW_QUEUE_FILTER_TYPE: low_queue_factory,
        KV_CACHE_FILTER_TYPE: kv_cache_factory,
        MODEL_AFFINITY_FILTER_TYPE: model_affinity_factory,
    }


class PluginLoader:
    """
    Lazily instantiating registry over a list of plugin declarations.

    Factories receive the loader itself as their registry, so references
    resolve to declared plugins whether they appear before or after the
    referencing plugin.
    """

    def __init__(
        self,
        specs: list[PluginSpec],
        factories: Mapping[str, PluginFactory],
    ) -> None:
        self._specs: dict[str, PluginSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ConfigError(f"duplicate plugin name: {spec.name}", path="plugins")
            if spec.type not in factories:
                raise ConfigError(
                    f"unknown plugin type: {spec.type}",
                    path=f"plugins.{spec.name}",
                )
            self._specs[spec.name] = spec

        self._factories = factories
        self._registry = PluginRegistry()
        # Names under construction, in resolution order
        self._in_progress: list[str] = []

    def lookup(self, name: str) -> Plugin | None:
        existing = self._registry.lookup(name)
        if existing is not None:
            return existing

        spec = self._specs.get(name)
        if spec is None:
            return None

        if name in self._in_progress:
            chain = self._in_progress[self._in_progress.index(name) :] + [name]
            raise ConfigError(
                f"cycle detected: {' -> '.join(chain)}",
                path=f"plugins.{name}",
            )

        self._in_progress.append(name)
        try:
            plugin = self._factories[spec.type](spec.name, spec.parameters, self)
        finally:
            self._in_progress.pop()

        self._registry.register(plugin, name=name)
        return plugin

    def load_all(self) -> PluginRegistry:
        """Instantiate every declared plugin in declaration order."""
        for name in self._specs:
            self.lookup(name)
        return self._registry


def parse_scheduler_config(document: Mapping[str, Any] | str | bytes | Path) -> SchedulerConfig:
    """
    Parse a configuration document given as a mapping, JSON text or file path.

    Raises:
        ConfigError: If the file cannot be read or the document is malformed
    """
    if isinstance(document, Path):
        try:
            document = document.read_text()
        except OSError as e:
            raise ConfigError(
                "failed to read scheduler configuration",
                detail=f"{document}: {e}",
            ) from e

    try:
        if isinstance(document, str | bytes):
            return SchedulerConfig.model_validate_json(document)
        return SchedulerConfig.model_validate(dict(document))
    except ValidationError as e:
        raise ConfigError("malformed scheduler configuration", detail=str(e)) from e


def load_scheduler_config(
    document: Mapping[str, Any] | str | bytes | Path,
    factories: Mapping[str, PluginFactory] | None = None,
) -> LoadedConfig:
    """
    Build every plugin in a configuration document and resolve the root filter.

    Raises:
        ConfigError: On any malformed document, unknown type, duplicate name,
            invalid plugin parameters, reference cycle, or a root that is not
            a declared filter
    """
    config = parse_scheduler_config(document)
    loader = PluginLoader(config.plugins, factories or default_factories())
    registry = loader.load_all()

    root = registry.lookup(config.filter)
    if root is None:
        raise ConfigError(f"undefined reference: {config.filter}", path="filter")
    if not isinstance(root, Filter):
        raise ConfigError(f"{config.filter} is not a filter", path="filter")

    logger.info(
        "SCHEDULER_CONFIG_LOADED",
        extra={
            "plugin_count": len(registry),
            "root_filter": config.filter,
            "root_type": root.plugin_type,
        },
    )
    return LoadedConfig(registry=registry, root=root)
