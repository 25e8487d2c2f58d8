"""Registry of loaded plugins' metadata."""

from __future__ import annotations

import threading

from photondb.plugin.traits import PluginCapability, PluginError, PluginMetadata

__all__ = ["PluginRegistry"]


class PluginRegistry:
    """Thread-safe record of registered plugins, keyed by name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._plugins: dict[str, PluginMetadata] = {}

    def register(self, metadata: PluginMetadata) -> None:
        """Record a plugin; raise PluginError if its name is taken."""
        with self._lock:
            if metadata.name in self._plugins:
                raise PluginError(f"Plugin '{metadata.name}' already registered")
            self._plugins[metadata.name] = metadata

    def unregister(self, name: str) -> None:
        """Forget a plugin; raise PluginError if it is not registered."""
        with self._lock:
            if self._plugins.pop(name, None) is None:
                raise PluginError(f"Plugin '{name}' not found")

    def get(self, name: str) -> PluginMetadata | None:
        """Metadata of the plugin ``name``, or None."""
        with self._lock:
            return self._plugins.get(name)

    def list(self) -> list[PluginMetadata]:
        """Metadata of every registered plugin."""
        with self._lock:
            return [*self._plugins.values()]

    def find_by_capability(self, capability: PluginCapability) -> list[str]:
        """Names of the plugins offering ``capability``."""
        with self._lock:
            return [
                name
                for name, metadata in self._plugins.items()
                if capability in metadata.capabilities
            ]