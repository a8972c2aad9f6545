from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..errors import UnknownAdapter
from .base import AdapterConfig, SourceAdapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[AdapterConfig | None], SourceAdapter]


@dataclass(frozen=True)
class AdapterInfo:
    name: str
    display_name: str
    description: str
    source_type: str


@dataclass
class AdapterRegistry:
    """name -> factory mapping.

    Holds no data, only factories: every `get` builds a fresh adapter.
    Pass an instance to whatever builds the pipeline instead of sharing a
    module-level one.
    """

    _factories: dict[str, AdapterFactory] = field(default_factory=dict)

    def register(self, name: str, factory: AdapterFactory) -> None:
        if name in self._factories:
            logger.warning("Adapter %s already registered, overwriting", name)
        self._factories[name] = factory

    def get(self, name: str, config: AdapterConfig | None = None) -> SourceAdapter:
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownAdapter(name)
        return factory(config)

    def list(self) -> list[str]:
        return list(self._factories)

    def has(self, name: str) -> bool:
        return name in self._factories

    def describe(self) -> list[AdapterInfo]:
        out: list[AdapterInfo] = []
        for name in self._factories:
            a = self.get(name)
            out.append(AdapterInfo(a.name, a.display_name, a.description, a.source_type))
        return out
