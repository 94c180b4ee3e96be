"""
Settings Loader (``freight_config.loader``).

Responsibility
--------------
Loads the runtime settings YAML file and parses it into a frozen
``FreightSettings`` dataclass.  The packaged ``defaults.yaml`` is used
unless ``FREIGHT_CONFIG_FILE`` names another file.  ``FREIGHT_DATABASE_URL``
overrides the database URL from either source.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on kernel or
modules; the kernel consumes the result through
``freight_kernel.db.engine.init_engine_from_settings``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError`` propagates.
* Unknown log level  -> ``ValueError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_FILE_ENV = "FREIGHT_CONFIG_FILE"
DATABASE_URL_ENV = "FREIGHT_DATABASE_URL"

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class FreightSettings:
    """Runtime settings for the freight kernel."""

    database_url: str
    sql_echo: bool = False
    log_level: str = "INFO"
    overpayment_requires_confirmation: bool = True

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_settings(data: Mapping[str, Any]) -> FreightSettings:
    """Parse a settings dict into ``FreightSettings``."""
    database = data.get("database") or {}
    logging_section = data.get("logging") or {}
    invoicing = data.get("invoicing") or {}

    level = str(logging_section.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    return FreightSettings(
        database_url=database["url"],
        sql_echo=bool(database.get("echo", False)),
        log_level=level,
        overpayment_requires_confirmation=bool(
            invoicing.get("overpayment_requires_confirmation", True)
        ),
    )


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> FreightSettings:
    """
    Load settings from ``path``, ``$FREIGHT_CONFIG_FILE`` or the defaults.

    ``environ`` defaults to ``os.environ``; tests pass a plain dict.
    """
    env = os.environ if environ is None else environ
    source = Path(path or env.get(CONFIG_FILE_ENV) or DEFAULTS_PATH)
    data = load_yaml_file(source)

    override = env.get(DATABASE_URL_ENV)
    if override:
        data = {**data, "database": {**(data.get("database") or {}), "url": override}}

    return parse_settings(data)
