from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import yaml

from .config import Settings


def configure_logging(settings: Settings) -> None:
    """
    Apply the YAML dictConfig at `settings.logging_config_path`.

    `log_level` and `log_format` ("text" or "json") override the file's root logger.
    """
    path = Path(settings.logging_config_path)
    with path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    handler = "json" if settings.log_format.lower() == "json" else "console"
    config.setdefault("root", {})
    config["root"]["level"] = settings.log_level.upper()
    config["root"]["handlers"] = [handler]

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured from %s", path)
