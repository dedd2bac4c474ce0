"""Updater configuration loaded from JSON with environment overrides."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

from self_updater import constants


def _default_temporary_directory() -> Path:
    return Path(tempfile.gettempdir())


@dataclass(frozen=True)
class UpdaterConfig:
    """Structured configuration values for one updater instance."""

    temporary_directory: Path = field(default_factory=_default_temporary_directory)
    install_retry_budget: int = constants.INSTALL_RETRY_BUDGET
    install_retry_delay: float = constants.INSTALL_RETRY_DELAY_SECONDS
    install_max_copy_cycles: int | None = constants.INSTALL_MAX_COPY_CYCLES
    download_chunk_size: int = constants.DOWNLOAD_CHUNK_SIZE
    unzip_tool: Path | None = None
    extractor: str = constants.EXTRACTOR_COMMAND


def load_updater_config(path: str | Path | None = None) -> UpdaterConfig:
    """Load configuration from ``path`` and apply environment overrides.

    Missing files, malformed JSON and invalid values fall back to defaults.
    """

    data = _read_config_data(path)
    defaults = UpdaterConfig()

    temporary_directory = _coerce_path(data.get("temporary_directory")) or defaults.temporary_directory
    env_temp = os.environ.get(constants.TEMP_DIR_ENV)
    if env_temp:
        temporary_directory = Path(env_temp).expanduser()

    unzip_tool = _coerce_path(data.get("unzip_tool"))
    env_unzip = os.environ.get(constants.UNZIP_TOOL_ENV)
    if env_unzip:
        unzip_tool = Path(env_unzip).expanduser()

    extractor = _coerce_extractor(
        os.environ.get(constants.EXTRACTOR_ENV) or data.get("extractor"),
        default=defaults.extractor,
    )

    return UpdaterConfig(
        temporary_directory=temporary_directory,
        install_retry_budget=_coerce_positive_int(
            data.get("install_retry_budget"), default=defaults.install_retry_budget
        ),
        install_retry_delay=_coerce_non_negative_float(
            data.get("install_retry_delay"), default=defaults.install_retry_delay
        ),
        install_max_copy_cycles=_coerce_copy_cycles(
            data.get("install_max_copy_cycles", defaults.install_max_copy_cycles),
            default=defaults.install_max_copy_cycles,
        ),
        download_chunk_size=_coerce_positive_int(
            data.get("download_chunk_size"), default=defaults.download_chunk_size
        ),
        unzip_tool=unzip_tool,
        extractor=extractor,
    )


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is None:
        return {}
    try:
        raw = Path(path).expanduser().read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _coerce_path(value: Any) -> Path | None:
    if isinstance(value, str) and value.strip():
        return Path(value.strip()).expanduser()
    return None


def _coerce_extractor(value: Any, *, default: str) -> str:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in constants.EXTRACTOR_KINDS:
            return lowered
    return default


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float)):
            candidate = int(value)
        elif isinstance(value, str):
            candidate = int(float(value))
        else:
            return default
    except (OverflowError, ValueError):
        return default
    if candidate <= 0:
        return default
    return candidate


def _coerce_copy_cycles(value: Any, *, default: int | None) -> int | None:
    # ``null`` in the JSON file lifts the bound entirely.
    if value is None:
        return None
    return _coerce_positive_int(value, default=default or constants.INSTALL_MAX_COPY_CYCLES)


def _coerce_non_negative_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate < 0:
        return default
    return candidate


__all__ = ["UpdaterConfig", "load_updater_config"]
