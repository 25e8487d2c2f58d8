"""Lifecycle management of plugins."""

from __future__ import annotations

import logging
from os import PathLike
from typing import Any, Protocol, Sequence

from photondb.plugin.loader import PluginLoader
from photondb.plugin.registry import PluginRegistry
from photondb.plugin.traits import Plugin, PluginError

__all__ = ["PluginManager"]

log = logging.getLogger(__name__)


class _Loader(Protocol):
    async def load(self, path: Any) -> Plugin: ...


class PluginManager:
    """Loads, runs and unloads plugins, keeping the registry in step."""

    def __init__(
        self, loader: _Loader | None = None, registry: PluginRegistry | None = None
    ) -> None:
        self.registry = registry if registry is not None else PluginRegistry()
        self._loader: _Loader = loader if loader is not None else PluginLoader()
        self._plugins: dict[str, Plugin] = {}

    async def load_plugin(self, path: str | PathLike[str]) -> None:
        """Load the plugin at ``path`` and register it."""
        plugin = await self._loader.load(path)
        metadata = plugin.metadata()
        log.info("Loading plugin %s %s", metadata.name, metadata.version)
        self.registry.register(metadata)
        self._plugins[metadata.name] = plugin

    async def unload_plugin(self, name: str) -> None:
        """Shut down and forget the plugin ``name``."""
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            raise PluginError(f"Plugin '{name}' not found")
        await plugin.shutdown()
        self.registry.unregister(name)
        log.info("Plugin unloaded: %s", name)

    def get_plugin(self, name: str) -> Plugin | None:
        """The loaded plugin ``name``, or None."""
        return self._plugins.get(name)

    def list_plugins(self) -> list[str]:
        """Names of all loaded plugins."""
        return list(self._plugins)

    async def execute(self, plugin_name: str, function_name: str, args: Sequence[Any]) -> Any:
        """Run ``function_name`` of plugin ``plugin_name`` with ``args``."""
        plugin = self.get_plugin(plugin_name)
        if plugin is None:
            raise PluginError(f"Plugin '{plugin_name}' not found")
        return await plugin.execute(function_name, args)

    async def shutdown(self) -> None:
        """Shut down every plugin, logging rather than raising failures."""
        plugins, self._plugins = self._plugins, {}
        for name, plugin in plugins.items():
            log.info("Shutting down plugin %s", name)
            try:
                await plugin.shutdown()
            except Exception as err:
                log.error("Plugin shutdown error in %s: %s", name, err)