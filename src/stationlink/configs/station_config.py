from dataclasses import dataclass

from stationlink.configs.constants import network


@dataclass
class StationCfg:
    """Connection settings for one station client."""
    host: str = network.DEFAULT_HOST
    port: int = network.DEFAULT_PORT
    timeout_s: float = network.API_TIMEOUT_S
    binary_path: str = network.DEFAULT_STATION_BIN
    args: str = ""
    auto_launch: bool = True
    startup_timeout_s: float = network.STARTUP_TIMEOUT_S
    line_timeout_s: float = network.STARTUP_LINE_TIMEOUT_S

    def __post_init__(self):
        if not self.host:
            raise ValueError("host must not be empty")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        for name in ("timeout_s", "startup_timeout_s", "line_timeout_s"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def build(self):
        from stationlink.interfaces.station import Station  # pylint: disable=import-outside-toplevel

        return Station(
            host=self.host,
            port=self.port,
            timeout_s=self.timeout_s,
            binary_path=self.binary_path,
            args=self.args,
            auto_launch=self.auto_launch,
            startup_timeout_s=self.startup_timeout_s,
            line_timeout_s=self.line_timeout_s,
        )
