"""
Configuration management for yuzu-extractor using Pydantic.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, ClassVar, List, Literal, Optional, cast

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Defaults tuned to the Yuzu reader markup ---

DEFAULT_UI_SELECTORS: List[str] = [
    "nav",
    "header:not(section header)",
    "footer",
    '[class*="toolbar"]',
    '[class*="sidebar"]',
    '[class*="Sidebar"]',
    '[class*="toast"]',
    '[class*="Toast"]',
    '[class*="modal"]',
    '[class*="Modal"]',
    '[class*="overlay"]',
    '[class*="Overlay"]',
    '[class*="floating"]',
    '[class*="Floating"]',
    '[role="navigation"]',
    '[role="banner"]',
    '[role="complementary"]',
    '[role="dialog"]',
    '[role="alertdialog"]',
    "pwa-extension-ng-components",
    ".widget",
    "#staticloader",
    "#vstui__portal_root",
    '[data-testid*="toolbar"]',
    '[data-testid*="sidebar"]',
    '[class*="annotation"]',
    '[class*="highlight-"]',
]

PRINT_WARNING_PHRASE = "To print, please use the print page range feature within the application."

# --- Nested Configuration Models ---


class ConversionOptions(BaseModel):
    """Per-call conversion switches. Supplied by the caller, never persisted."""

    strip_ui: bool = Field(default=True, description="Remove reader chrome, hidden elements and scripts.")
    fix_print: bool = Field(default=True, description="Strip print-blocking CSS countermeasures.")


class SanitizerConfig(BaseModel):
    """Tree sanitization settings."""

    ui_selectors: List[str] = Field(
        default_factory=lambda: list(DEFAULT_UI_SELECTORS),
        description="CSS selectors of UI chrome removed when strip_ui is set.",
    )
    preserved_selector: str = Field(
        default="img, table, figure, math, svg",
        description="Hidden elements containing a match are kept (content pending async rendering).",
    )
    print_warning: str = Field(default=PRINT_WARNING_PHRASE, description="Exact print-warning banner phrase.")
    lazy_src_attribute: str = Field(default="data-src", description="Lazy-load image source attribute.")


class LocatorConfig(BaseModel):
    """Content frame search settings."""

    host_selector: str = Field(default="mosaic-book", description="Element hosting the reader shadow tree.")
    frame_selectors: List[str] = Field(
        default_factory=lambda: ["iframe.favre", "iframe"],
        description="Frames looked up inside the host shadow tree, in order.",
    )
    min_host_frame_length: int = Field(default=100, ge=0)
    min_frame_length: int = Field(default=500, ge=0)
    min_self_length: int = Field(default=1000, ge=0)
    content_marker: str = Field(default="section, article, p.para, div.para")
    same_origin_only: bool = Field(default=True, description="Refuse to enter frames from another origin.")


class ReadinessConfig(BaseModel):
    """Scroll-and-poll sequence settings."""

    step_px: int = Field(default=200, gt=0, description="Scroll increment in pixels.")
    default_step_delay_ms: int = Field(default=150, ge=0)
    bottom_pause_factor: float = Field(default=2.0, ge=0)
    lazy_placeholder_selector: str = Field(default="mjx-lazy")
    poll_ceiling_seconds: float = Field(default=10.0, ge=0)
    poll_interval_ms: int = Field(default=300, ge=0)
    top_pause_ms: int = Field(default=200, ge=0)
    typeset_timeout_seconds: float = Field(default=5.0, ge=0)
    image_timeout_seconds: float = Field(default=5.0, ge=0)
    settle_ms: int = Field(default=500, ge=0)


class AssetConfig(BaseModel):
    """Image inlining settings."""

    enabled: bool = Field(default=True, description="Embed remote images in Markdown as data URIs.")
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_concurrency: int = Field(default=8, gt=0)
    max_bytes: Optional[int] = Field(default=None, description="Skip images larger than this. None for no limit.")
    user_agent: str = Field(default="yuzu-extractor/0.1.0")


class ExtractionConfig(BaseModel):
    """Entry operation settings."""

    default_title: str = Field(default="Yuzu Section")
    min_body_length: int = Field(default=100, ge=0, description="Minimum trimmed body markup for a usable frame.")


class BrowserConfig(BaseModel):
    """Playwright settings used by the command line."""

    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    user_data_dir: Optional[Path] = Field(
        default=None, description="Persistent profile directory so a logged-in reader session is reused."
    )
    navigation_timeout_ms: int = Field(default=60000, gt=0)
    load_wait_ms: int = Field(default=3000, ge=0, description="Extra wait after navigation for the reader to boot.")

    @field_validator("user_data_dir", mode="before")
    @classmethod
    def create_profile_dir(cls, v: Any) -> Optional[Path]:
        if v is None or v == "":
            return None
        path = Path(v).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = Field(default=False, description="Render JSON lines even on the console.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "yuzu-extractor"
    version: str = "0.1.0"
    conversion: ConversionOptions = Field(default_factory=ConversionOptions)
    sanitizer: SanitizerConfig = Field(default_factory=SanitizerConfig)
    locator: LocatorConfig = Field(default_factory=LocatorConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    assets: AssetConfig = Field(default_factory=AssetConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="YUZU_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in ("yuzu-extractor.yaml", "yuzu-extractor.yml"):
        path = current_dir / name
        if path.exists():
            return path
    return None


# --- Lazy Configuration Loader ---


class LazyConfig:
    """
    A proxy for the Config object that delays its loading and validation
    until an attribute is first accessed, so a broken config file cannot
    crash the process on import.
    """

    _config: ClassVar[Config | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        if self.__class__._config is None:
            with self.__class__._lock:
                if self.__class__._config is None:
                    self.__class__._config = self._load_config_with_fallback()
        return getattr(self.__class__._config, name)

    def _load_config_with_fallback(self) -> Config:
        """Load configuration from file or fall back to defaults."""
        config_path = find_config_file()
        if config_path:
            try:
                log.info("Lazy loading configuration from: %s", config_path)
                return Config.from_yaml(config_path)
            except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
                log.error(
                    "Failed to load or validate configuration from '%s': %s. Falling back to default settings.",
                    config_path,
                    e,
                    exc_info=log.getEffectiveLevel() <= logging.DEBUG,
                )
        else:
            log.info("No config file found. Using default settings for lazy load.")

        try:
            return Config()
        except ValidationError as e:
            log.critical("FATAL: Default configuration is invalid: %s", e, exc_info=True)
            raise RuntimeError(f"Default configuration is invalid, cannot start: {e}") from e


# --- Global Settings Instance ---
settings: "Config" = cast("Config", LazyConfig())
