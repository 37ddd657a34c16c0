# =============================================================================
# portico/config.py - Application Settings
# =============================================================================
# Settings are built once at startup by load_config() and passed explicitly:
# create_app(settings) hands the same object to every stage and each request
# can read it back from request.state.config.
#
# Usage:
#   from portico.config import load_config
#   settings = load_config("/srv/site/config.py", {"port": 8080})
#
# Precedence (highest first):
# 1. Override objects passed to load_config (later wins)
# 2. The configuration source (file or mapping)
# 3. PORTICO_* environment variables / .env file
# 4. Field defaults below
# =============================================================================

import importlib.util
import json
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from types import ModuleType
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from portico.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for one portico server.

    Keys not declared here are kept (``extra="allow"``) so applications can
    put their own options in the same config file and read them from
    ``request.state.config``.
    """

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------

    name: str = Field(
        default="portico",
        description="Service name printed in the startup line"
    )

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server to"
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port for the server"
    )

    root: Path = Field(
        default_factory=Path.cwd,
        description="Base directory every other relative path is resolved against"
    )

    env: str = Field(
        default="development",
        description="Current environment; selects the request log format"
    )

    debug: bool = Field(
        default=False,
        description="Verbose console logging"
    )

    init: Callable[..., Any] | None = Field(
        default=None,
        description="Called with the FastAPI app before any middleware is attached"
    )

    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )

    # -------------------------------------------------------------------------
    # Directories
    # -------------------------------------------------------------------------

    logs: str = Field(
        default="logs",
        description="Log directory, relative to root"
    )

    views: str | None = Field(
        default=None,
        description="Template directory, relative to root; views are off when unset"
    )

    view_engine: str = Field(
        default="html",
        description="Template file extension the view engine is registered for"
    )

    engine: Callable[..., Any] | None = Field(
        default=None,
        description="Custom render function (template_path, context) -> str"
    )

    favicon: str | None = Field(
        default=None,
        description="Favicon file, relative to root"
    )

    static: list[str] = Field(
        default_factory=list,
        description="Static directories, relative to root, searched in order"
    )

    routes: list[str] = Field(
        default_factory=list,
        description="Route module directories, relative to root, injected in order"
    )

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    before_route: list[Any] = Field(
        default_factory=list,
        description="dispatch(request, call_next) hooks run before routing"
    )

    after_route: list[Any] = Field(
        default_factory=list,
        description="hook(request, exc) error hooks; return a Response to answer"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    token_secret_key: str | None = Field(
        default=None,
        description="Secret for signing tokens"
    )

    token_expire_in: int | None = Field(
        default=None,
        gt=0,
        description="Token lifetime in seconds (verification side)"
    )

    session_secret_key: str | None = Field(
        default=None,
        description="Secret for the flash session cookie (defaults to the token secret)"
    )

    # -------------------------------------------------------------------------
    # File Upload Settings
    # -------------------------------------------------------------------------

    upload: str = Field(
        default="assets/upload",
        description="Upload directory under <root>/temp"
    )

    upload_field_name: str = Field(
        default="upload",
        description="Multipart field carrying the uploaded file"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_prefix="PORTICO_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="allow",
        arbitrary_types_allowed=True,
    )

    @field_validator("static", "routes", "before_route", "after_route", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        """Accept a single entry wherever a list is expected."""
        if value is None:
            return []
        if isinstance(value, (str, Path)) or callable(value):
            return [value]
        return value

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == "development"

    @property
    def log_dir(self) -> Path:
        return self.root / self.logs

    @property
    def views_dir(self) -> Path | None:
        return self.root / self.views if self.views else None

    @property
    def favicon_path(self) -> Path | None:
        return self.root / self.favicon if self.favicon else None

    @property
    def static_dirs(self) -> list[Path]:
        return [self.root / directory for directory in self.static]

    @property
    def route_dirs(self) -> list[Path]:
        return [self.root / directory for directory in self.routes]

    @property
    def temp_dir(self) -> Path:
        return self.root / "temp"


# =============================================================================
# Loading
# =============================================================================

def _module_config(module: ModuleType) -> dict[str, Any]:
    """
    Pull configuration out of an executed config module.

    A ``config`` mapping wins; otherwise every public lowercase attribute
    that is not itself a module is taken.
    """
    declared = getattr(module, "config", None)
    if isinstance(declared, Mapping):
        return dict(declared)

    return {
        key: value
        for key, value in vars(module).items()
        if not key.startswith("_")
        and key.islower()
        and not isinstance(value, ModuleType)
    }


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read a .py or .json configuration file into a dict."""
    if not path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            suggestion="Pass an existing .py or .json file, or a mapping",
            path=str(path),
        )

    if path.suffix == ".json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}", path=str(path)) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a JSON object", path=str(path))
        return data

    if path.suffix == ".py":
        spec = importlib.util.spec_from_file_location(f"_portico_config_{path.stem}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return _module_config(module)

    raise ConfigurationError(
        f"Unsupported configuration file type: {path.suffix or path.name}",
        suggestion="Use a .py module exporting `config` or a .json file",
        path=str(path),
    )


def load_config(source: str | Path | Mapping[str, Any] | Settings | None = None, *overrides: Mapping[str, Any]) -> Settings:
    """
    Build Settings from a config source plus override objects.

    Args:
        source: Path to a .py/.json config file, a mapping, an existing
            Settings instance, or None for defaults only
        *overrides: Mappings shallow-merged in order, later wins

    Returns:
        Settings: The merged, validated settings

    Raises:
        ConfigurationError: If the file is missing, unreadable or unsupported

    Example:
        settings = load_config("site/config.py", {"port": 8080})
        settings.root  # -> Path("site").resolve()
    """
    if source is None:
        merged: dict[str, Any] = {}
    elif isinstance(source, Settings):
        merged = source.model_dump()
    elif isinstance(source, Mapping):
        merged = dict(source)
    else:
        path = Path(source).expanduser().resolve()
        merged = _read_config_file(path)
        merged["root"] = path.parent
        logger.debug(f"Loaded configuration from {path}")

    for override in overrides:
        if override:
            merged.update(override)

    return Settings(**merged)
