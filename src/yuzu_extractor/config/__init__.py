"""Configuration models for yuzu-extractor."""

from .config import (
    AssetConfig,
    BrowserConfig,
    Config,
    ConversionOptions,
    ExtractionConfig,
    LocatorConfig,
    MonitoringConfig,
    ReadinessConfig,
    SanitizerConfig,
    find_config_file,
    settings,
)

__all__ = [
    "AssetConfig",
    "BrowserConfig",
    "Config",
    "ConversionOptions",
    "ExtractionConfig",
    "LocatorConfig",
    "MonitoringConfig",
    "ReadinessConfig",
    "SanitizerConfig",
    "find_config_file",
    "settings",
]
