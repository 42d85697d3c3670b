"""Persistent JSON config helpers.

Stores display width for comments, symbol query timeouts, and the bookmark
data directory. All access is defensive: malformed or missing config falls
back safely.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)

APP_NAME = "anchormark"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_DATA_DIR = Path(user_data_dir(APP_NAME, appauthor=False))

DEFAULT_COMMENT_WIDTH = 15
DEFAULT_CALIBRATION_TIMEOUT_MS = 500
DEFAULT_RELOCATION_TIMEOUT_MS = 1000


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    comment_width: int = DEFAULT_COMMENT_WIDTH
    calibration_timeout_ms: int = DEFAULT_CALIBRATION_TIMEOUT_MS
    relocation_timeout_ms: int = DEFAULT_RELOCATION_TIMEOUT_MS
    data_dir: Path = DEFAULT_DATA_DIR

    @property
    def calibration_timeout_seconds(self) -> float:
        return self.calibration_timeout_ms / 1000.0

    @property
    def relocation_timeout_seconds(self) -> float:
        return self.relocation_timeout_ms / 1000.0


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are logged and otherwise ignored so a read-only config
    directory never breaks bookmarking.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.warning("could not write config %s: %s", CONFIG_PATH, exc)


def _coerce_positive_int(value: object, default: int) -> int:
    """Booleans, non-integers, and values below 1 fall back to ``default``."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value > 0 else default


def _coerce_data_dir(value: object) -> Path:
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_DATA_DIR
    return Path(value.strip()).expanduser()


def load_settings() -> Settings:
    """Build ``Settings`` from config, substituting defaults for invalid entries."""
    data = load_config()
    return Settings(
        comment_width=_coerce_positive_int(data.get("comment_width"), DEFAULT_COMMENT_WIDTH),
        calibration_timeout_ms=_coerce_positive_int(
            data.get("calibration_timeout_ms"), DEFAULT_CALIBRATION_TIMEOUT_MS
        ),
        relocation_timeout_ms=_coerce_positive_int(
            data.get("relocation_timeout_ms"), DEFAULT_RELOCATION_TIMEOUT_MS
        ),
        data_dir=_coerce_data_dir(data.get("data_dir")),
    )


def save_comment_width(width: int) -> None:
    """Persist the decoration width for comments."""
    config = load_config()
    config["comment_width"] = _coerce_positive_int(width, DEFAULT_COMMENT_WIDTH)
    save_config(config)


def save_data_dir(path: Path) -> None:
    """Persist an alternative bookmark data directory."""
    config = load_config()
    config["data_dir"] = str(Path(path).expanduser())
    save_config(config)
