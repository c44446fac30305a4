from .station_config import StationCfg

__all__ = ["StationCfg"]
