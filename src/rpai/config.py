"""On-disk configuration for rpai."""

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from textual.theme import BUILTIN_THEMES

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "rpai"
CONFIG_PATH = CONFIG_DIR / "config.yaml"
LOG_PATH = CONFIG_DIR / "rpai.log"

MIN_REFRESH_INTERVAL = 0.1
DEFAULT_THEME = "textual-dark"


@dataclass(slots=True, frozen=True)
class Config:
    """Settings read once at startup and passed explicitly."""

    idle_threshold: float = 3.0  # CPU percent
    refresh_interval: float = 2.0  # seconds
    ascii_symbols: bool = False
    theme: str = DEFAULT_THEME

    def with_theme(self, theme: str) -> "Config":
        return dataclasses.replace(self, theme=theme)


def config_path() -> Path:
    """Config file location; ``RPAI_CONFIG`` overrides the default."""
    override = os.environ.get("RPAI_CONFIG")
    return Path(override).expanduser() if override else CONFIG_PATH


def available_themes() -> list[str]:
    return sorted(BUILTIN_THEMES)


def _number(data: dict, key: str, default: float, minimum: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Ignoring invalid %s: %r", key, value)
        return default
    return max(minimum, float(value))


def _flag(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        logger.warning("Ignoring invalid %s: %r", key, value)
        return default
    return value


def load_config(path: Path | None = None) -> Config:
    """
    Load the config file, falling back to defaults.

    A missing file is normal. An unreadable or malformed file is logged and
    replaced by defaults so rpai still starts.
    """
    path = path or config_path()
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return Config()
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return Config()

    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping", path)
        return Config()

    defaults = Config()
    theme = data.get("theme", defaults.theme)
    if not isinstance(theme, str) or not theme:
        theme = defaults.theme

    return Config(
        idle_threshold=_number(data, "idle_threshold", defaults.idle_threshold, 0.0),
        refresh_interval=_number(
            data, "refresh_interval", defaults.refresh_interval, MIN_REFRESH_INTERVAL
        ),
        ascii_symbols=_flag(data, "ascii_symbols", defaults.ascii_symbols),
        theme=theme,
    )


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write config to disk and return the path written."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        yaml.safe_dump(dataclasses.asdict(config), f, default_flow_style=False, sort_keys=False)
    logger.debug("Saved config to %s", path)
    return path
