"""Locating and instantiating plugins."""

from __future__ import annotations

from os import PathLike

from photondb.plugin.traits import ExamplePlugin, Plugin, PluginError

__all__ = ["PluginLoader"]

_BUILTINS = {"example": ExamplePlugin}


class PluginLoader:
    """Creates plugin instances."""

    async def load(self, path: str | PathLike[str]) -> Plugin:
        """Load a plugin from a library file; only built-in plugins are available."""
        raise PluginError(
            f"Cannot load plugin from {path}: loading from files is unsupported, "
            "use built-in plugins"
        )

    def load_builtin(self, name: str) -> Plugin:
        """A fresh instance of the built-in plugin ``name``."""
        factory = _BUILTINS.get(name)
        if factory is None:
            raise PluginError(f"Unknown built-in plugin: {name}")
        return factory()