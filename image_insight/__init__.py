"""Top-level package for the Image Insight library."""

from .config import AppConfig
from .services.router import AnalysisRouter
from .services.trigger import HandlerTrigger
from .settings_store import SettingsStore

__all__ = ["AnalysisRouter", "AppConfig", "HandlerTrigger", "SettingsStore"]
