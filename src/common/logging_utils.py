"""
Logging setup for the graph engine.

Turns the `logging` section of `config.yaml` into a `dictConfig` mapping:
console output, an optional log file, and per-logger level overrides (the
graph store logs every node/edge mutation at DEBUG, which is usually too
chatty for whole-corpus builds).
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from src.common.config import CONFIG_PATH, load_config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level_name(value: Any) -> str:
    name = str(value).upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"Unknown log level: {value!r}")
    return name


def _handler(handler_class: str, level: str, **options: Any) -> Dict[str, Any]:
    return {"class": handler_class, "formatter": "standard", "level": level, **options}


def build_logging_config(
    logging_cfg: Mapping[str, Any],
    level_override: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Translate a `logging` config section into a `dictConfig` mapping.

    Recognised keys: `level`, `format`, `file` and `loggers` (logger name ->
    level). `level_override` (usually LOG_LEVEL) replaces the root level only.

    Raises:
        ValueError: on an unknown level name
    """
    root_level = _level_name(level_override or logging_cfg.get("level") or "INFO")

    handlers = {"console": _handler("logging.StreamHandler", root_level)}
    log_file = logging_cfg.get("file")
    if log_file:
        handlers["file"] = _handler("logging.FileHandler", root_level, filename=str(log_file), encoding="utf-8")

    loggers = {
        name: {"level": _level_name(level)}
        for name, level in (logging_cfg.get("loggers") or {}).items()
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": logging_cfg.get("format") or DEFAULT_FORMAT}},
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": root_level, "handlers": list(handlers)},
    }


def setup_logging(config_path: str = CONFIG_PATH) -> None:
    """Configure logging from config.yaml; LOG_LEVEL wins over the configured root level."""
    config = load_config(config_path)
    logging_cfg = config.get("logging") if isinstance(config, dict) else None

    dict_config = build_logging_config(logging_cfg or {}, os.getenv("LOG_LEVEL"))

    if "file" in dict_config["handlers"]:
        Path(dict_config["handlers"]["file"]["filename"]).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(dict_config)
