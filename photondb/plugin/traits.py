"""Plugin interface, metadata and a built-in example plugin."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

__all__ = [
    "PluginError",
    "PluginCapability",
    "PluginMetadata",
    "Plugin",
    "ExamplePlugin",
]


class PluginError(Exception):
    """Raised when a plugin cannot be found, loaded or run."""


class PluginCapability(Enum):
    """What a plugin contributes to the database."""

    QUERY_OPERATIONS = "QueryOperations"
    STORAGE_BACKEND = "StorageBackend"
    AUTHENTICATION = "Authentication"
    TRANSFORMATION = "Transformation"
    PROTOCOL = "Protocol"


@dataclass(frozen=True)
class PluginMetadata:
    """Descriptive information about a plugin."""

    name: str
    version: str
    author: str
    description: str
    capabilities: tuple[PluginCapability, ...] = ()


class Plugin(ABC):
    """Base class every plugin implements."""

    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Return the plugin's metadata."""

    async def initialize(self) -> None:
        """Prepare the plugin once it has been loaded."""

    async def shutdown(self) -> None:
        """Release resources before the plugin is unloaded."""

    @abstractmethod
    async def execute(self, function: str, args: Sequence[Any]) -> Any:
        """Run ``function`` with datum ``args`` and return a datum."""

    def list_functions(self) -> list[str]:
        """Names of the functions this plugin provides."""
        return []


class ExamplePlugin(Plugin):
    """A minimal plugin offering a single ``hello`` function."""

    def __init__(self) -> None:
        self._metadata = PluginMetadata(
            name="example",
            version="1.0.0",
            author="PhotonDB Team",
            description="Example plugin",
            capabilities=(PluginCapability.QUERY_OPERATIONS,),
        )

    def metadata(self) -> PluginMetadata:
        return self._metadata

    async def execute(self, function: str, args: Sequence[Any]) -> Any:
        if function == "hello":
            name = args[0] if args and isinstance(args[0], str) else "World"
            return f"Hello, {name}!"
        raise PluginError(f"Unknown function: {function}")

    def list_functions(self) -> list[str]:
        return ["hello"]