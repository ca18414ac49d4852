from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONF_PATH = Path("local") / "carddav.conf"

DEFAULT_CONF = """# carddav-bridge local config (TOML)
abook_id = "1"
database = "var/carddav.json"
base_url = ""
# username = ""
# password = ""
timeout = 30.0
log_level = "WARNING"
crop_photos = true
"""

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    abook_id: str = "1"
    database: Path = Path("var") / "carddav.json"
    base_url: str = ""
    username: str | None = None
    password: str | None = None
    timeout: float = 30.0
    log_level: str = "WARNING"
    crop_photos: bool = True


def write_default_config(conf_path: Path = DEFAULT_CONF_PATH) -> bool:
    """Create the config file with defaults unless it exists. Idempotent.

    Returns True if the file was written.
    """
    conf_path = Path(conf_path)
    if conf_path.exists():
        return False
    conf_path.parent.mkdir(parents=True, exist_ok=True)
    conf_path.write_text(DEFAULT_CONF, encoding="utf-8")
    return True


def settings_from_dict(data: dict) -> Settings:
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown config key(s): %s", ", ".join(unknown))

    settings = Settings()
    problems: list[str] = []
    if "abook_id" in data:
        settings.abook_id = str(data["abook_id"])
    if "database" in data:
        settings.database = Path(data["database"])
    if "base_url" in data:
        settings.base_url = str(data["base_url"])
    if "username" in data:
        settings.username = str(data["username"])
    if "password" in data:
        settings.password = str(data["password"])
    if "timeout" in data:
        try:
            settings.timeout = float(data["timeout"])
        except (TypeError, ValueError):
            problems.append(f"timeout must be a number, got {data['timeout']!r}")
    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in _LOG_LEVELS:
            problems.append(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        settings.log_level = level
    if "crop_photos" in data:
        settings.crop_photos = bool(data["crop_photos"])

    if problems:
        raise ConfigError("Invalid configuration", problems=problems)
    return settings


def load_settings(conf_path: Path = DEFAULT_CONF_PATH) -> Settings:
    """Read settings from a TOML file.

    A missing file yields the defaults; an unparsable one is reported and
    also yields the defaults. Invalid values raise ConfigError.
    """
    conf_path = Path(conf_path)
    if not conf_path.exists():
        return Settings()
    try:
        data = tomllib.loads(conf_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        logger.warning("%s is malformed, using defaults: %s", conf_path, e)
        return Settings()
    return settings_from_dict(data)
