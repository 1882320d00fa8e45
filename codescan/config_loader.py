"""
Config Loader: single source of truth for engine endpoints and tunables.

Loads config/codescan.yaml (or $CODESCAN_CONFIG), resolves ${VAR} and
${VAR:-default} from os.environ, and validates into Settings. Missing file or
missing keys fall back to built-in defaults, so tests can inject fake endpoints
by passing a Settings object instead of touching disk.

Usage:
    from codescan.config_loader import get_settings
    settings = get_settings()
    url = settings.engines.cloud.url
"""
import os
import re
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

try:
    from dotenv import load_dotenv
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")
except Exception:
    pass

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG_PATH = _CONFIG_DIR / "codescan.yaml"
CONFIG_ENV_VAR = "CODESCAN_CONFIG"

# Pattern: ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class CloudEngineConfig(BaseModel):
    url: str = "https://codescan-server.onrender.com/api/review"
    model: str = "llama-3.3-70b-versatile"
    max_tokens: int = 4000
    timeout: float = 120.0
    api_key: Optional[str] = None


class LocalEngineConfig(BaseModel):
    url: str = "http://localhost:11434/api/generate"
    model: str = "llama3.1:8b"
    temperature: float = 0.1
    num_predict: int = 2000
    timeout: float = 300.0


class EnginesConfig(BaseModel):
    cloud: CloudEngineConfig = Field(default_factory=CloudEngineConfig)
    local: LocalEngineConfig = Field(default_factory=LocalEngineConfig)


class ProbeConfig(BaseModel):
    url: str = "http://localhost:3001/health"
    timeout: float = 3.0


class ProjectConfig(BaseModel):
    concurrency: int = Field(default=4, ge=1)
    max_file_bytes: int = 100_000
    extensions: List[str] = Field(default_factory=list)  # empty = every known language suffix
    ignored_dirs: List[str] = Field(default_factory=lambda: [
        "node_modules", ".git", "dist", "build", ".next", "__pycache__",
        ".venv", "venv", "vendor", "target", "coverage",
    ])
    security_keywords: List[str] = Field(default_factory=lambda: ["security", "owasp"])


class ResilienceConfig(BaseModel):
    retry_attempts: int = Field(default=2, ge=1)
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_backoff_factor: float = 2.0


class Settings(BaseModel):
    engines: EnginesConfig = Field(default_factory=EnginesConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _resolve_env(value: Any) -> Any:
    """Recursively resolve ${VAR} and ${VAR:-default} in strings. Return as-is for non-strings."""
    if isinstance(value, str):
        def replacer(match):
            var_name = match.group(1)
            default = match.group(2)
            return os.environ.get(var_name, default if default is not None else "")
        return _ENV_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(item) for item in value]
    return value


def _drop_empty(value: Any) -> Any:
    """Remove keys whose resolved value is "" or None so model defaults apply."""
    if isinstance(value, dict):
        return {k: _drop_empty(v) for k, v in value.items() if v not in ("", None)}
    return value


def _load_raw(path: Path) -> Dict[str, Any]:
    """Load YAML file. Returns empty dict if not found."""
    if not path.exists():
        logger.warning("Config not found: %s (using defaults)", path)
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _default_path() -> Path:
    env_path = os.getenv(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else DEFAULT_CONFIG_PATH


_settings: Optional[Settings] = None


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load, resolve and validate settings. Caches result."""
    global _settings
    raw = _load_raw(path or _default_path())
    resolved = _drop_empty(_resolve_env(raw))
    _settings = Settings.model_validate(resolved)
    return _settings


def get_settings(path: Optional[Path] = None) -> Settings:
    """
    Get settings singleton. Loads on first call, then returns cached.
    Use path= to force reload from a specific file.
    """
    if path is not None:
        return load_settings(path)
    if _settings is None:
        return load_settings()
    return _settings


def reload_settings(path: Optional[Path] = None) -> Settings:
    """Force reload settings (e.g. for tests)."""
    global _settings
    _settings = None
    return load_settings(path)
