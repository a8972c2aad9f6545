"""Error taxonomy shared by adapters, ingestion services and the store."""

from __future__ import annotations


class GalaxyError(Exception):
    """Base class for all knowledge-galaxy errors."""


class SourceUnavailable(GalaxyError):
    """Transport or file read failed for a whole source."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class InvalidSourceFormat(GalaxyError):
    """The raw payload of a source failed structural validation."""

    def __init__(self, source: str, message: str = "invalid data structure"):
        super().__init__(f"{source}: {message}")
        self.source = source


class UnknownAdapter(GalaxyError, KeyError):
    """No adapter factory registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Adapter {name!r} not found")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]
