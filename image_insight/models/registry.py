"""Registry for discovering remote analyzers by name."""

from __future__ import annotations

import logging
from importlib import import_module
from typing import TYPE_CHECKING, Any, Callable, Dict

from .base import AnalyzerInfo, RemoteAnalyzer

if TYPE_CHECKING:  # pragma: no cover
    from ..clients import AwsClients
    from ..config import AppConfig

Factory = Callable[["AppConfig", "AwsClients"], RemoteAnalyzer]
logger = logging.getLogger(__name__)


class AnalyzerRegistry:
    """Tracks analyzer factories and builds configured analyzer sets on demand."""

    _factories: Dict[str, Factory] = {}
    _infos: Dict[str, AnalyzerInfo] = {}
    _bootstrap_complete: bool = False

    @classmethod
    def register(cls, info: AnalyzerInfo, factory: Factory) -> None:
        """Register an analyzer factory under ``info.identifier``."""
        cls._factories[info.identifier] = factory
        cls._infos[info.identifier] = info

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._factories.pop(name, None)
        cls._infos.pop(name, None)

    @classmethod
    def ensure_bootstrapped(cls) -> None:
        if cls._bootstrap_complete:
            return
        modules = [
            "image_insight.models.bedrock",
            "image_insight.models.rekognition",
        ]
        for module_name in modules:
            import_module(module_name)
        cls._bootstrap_complete = True

    @classmethod
    def list_infos(cls) -> list[AnalyzerInfo]:
        """Return metadata for all registered analyzers."""
        cls.ensure_bootstrapped()
        return list(cls._infos.values())

    @classmethod
    def get(cls, name: str, *, config: AppConfig, clients: Any) -> RemoteAnalyzer:
        cls.ensure_bootstrapped()
        try:
            factory = cls._factories[name]
        except KeyError as exc:
            available = ", ".join(sorted(cls._factories))
            raise KeyError(f"Unknown analyzer '{name}'. Available: {available}") from exc
        logger.debug("Building analyzer '%s'", name)
        return factory(config, clients)

    @classmethod
    def build(cls, names: list[str], *, config: AppConfig, clients: Any) -> dict[str, RemoteAnalyzer]:
        """Instantiate ``names`` in order, keyed by analyzer name."""
        return {name: cls.get(name, config=config, clients=clients) for name in names}
