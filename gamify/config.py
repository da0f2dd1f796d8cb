"""
gamify.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for service-level settings.  Runtime-tunable data
(scoring weights) lives in the ``settings`` table instead and is edited
through the API.

Usage::

    from gamify.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.unlock_report_mode)    # "qualifying"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from gamify.constants import REPORT_QUALIFYING, UNLOCK_REPORT_MODES


@dataclass(frozen=True, slots=True)
class GamifyConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    service_name: str
    api_port: int

    # "qualifying" reports every achievement that currently qualifies among
    # the touched metrics; "new" reports only first-time unlocks.
    unlock_report_mode: str = REPORT_QUALIFYING

    log_level: str = "INFO"


def load_config(path: str | Path = "config.yaml") -> GamifyConfig:
    """Read *path* and return a :class:`GamifyConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If ``unlock_report_mode`` is not a known mode.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    mode = raw.get("unlock_report_mode", REPORT_QUALIFYING)
    if mode not in UNLOCK_REPORT_MODES:
        raise ValueError(
            f"unlock_report_mode must be one of {sorted(UNLOCK_REPORT_MODES)}, got {mode!r}"
        )

    return GamifyConfig(
        service_name=raw["service_name"],
        api_port=int(raw["api_port"]),
        unlock_report_mode=mode,
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )
