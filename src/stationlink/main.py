#!/usr/bin/env python3
"""
Command line entry point for stationlink.

Connects to a station (starting it when allowed), reports its version and
the items of the open station, then disconnects.  All settings become CLI
flags via Draccus.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import draccus

from stationlink.common.messaging.utils import StationError
from stationlink.configs.station_config import StationCfg
from stationlink.utils.configs import apply_yaml_overrides, dataclass_summary, load_yaml_config
from stationlink.utils.logger import setup_root_logger

logger = logging.getLogger(__name__)


@dataclass
class MainConfig:
    """Top level configuration for the command line client."""

    station: StationCfg = field(default_factory=StationCfg)

    # Only list items of this type (-1 lists all)
    item_type: int = -1

    # Optional config file override
    config_file: str = ""

    # Logging level name (DEBUG, INFO, ...)
    log_level: str = "INFO"

    # Log transport and handshake details at DEBUG
    wire_debug: bool = False

    def __post_init__(self):
        level = logging.getLevelName(self.log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {self.log_level}")


def run(cfg: MainConfig) -> int:
    """Run one inspection session.  Returns a process exit code."""
    logger.info(f"Station settings: {dataclass_summary(cfg.station)}")
    station = cfg.station.build()
    try:
        if not station.connect():
            logger.error(f"Could not connect to station at {cfg.station.host}:{cfg.station.port}")
            return 1

        logger.info(f"Station version: {station.version()}")
        filter_type: Optional[int] = cfg.item_type if cfg.item_type >= 0 else None
        names = station.get_item_list_names(filter_type)
        logger.info(f"{len(names)} items in the open station")
        for name in names:
            logger.info(f"  {name}")
        return 0
    except StationError as e:
        logger.error(f"Station call failed: {e}")
        return 1
    finally:
        station.disconnect()


@draccus.wrap()
def main(cfg: MainConfig):
    """
    Main entry point for stationlink.

    Configuration precedence (highest to lowest):
    1. CLI flags (via Draccus)
    2. YAML config file overrides (``station:`` section)
    3. Default values

    Examples:
        python -m stationlink.main
        python -m stationlink.main --station.port=20501 --station.auto_launch=false
        python -m stationlink.main --config_file=config/station.yaml --item_type=2
    """
    setup_root_logger(logging.getLevelName(cfg.log_level.upper()), wire_debug=cfg.wire_debug)

    if cfg.config_file:
        yaml_overrides = load_yaml_config(cfg.config_file)
        if yaml_overrides:
            logger.info(f"Applying YAML overrides from {cfg.config_file}")
            apply_yaml_overrides(cfg.station, yaml_overrides)

    return run(cfg)


if __name__ == "__main__":
    raise SystemExit(main())
