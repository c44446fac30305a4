import logging

import pytest
import yaml

from conftest import STATUS_OK, free_port, i32, line
from stationlink.configs.constants import network
from stationlink.configs.station_config import StationCfg
from stationlink.interfaces.station import Station
from stationlink.main import MainConfig, run
from stationlink.utils.configs import apply_yaml_overrides, load_yaml_config
from stationlink.utils.logger import setup_root_logger


def test_defaults_are_valid():
    cfg = StationCfg()
    assert cfg.port == network.DEFAULT_PORT
    assert cfg.auto_launch


@pytest.mark.parametrize("kwargs", [{"port": 0}, {"port": 70000}, {"host": ""}, {"timeout_s": 0},
                                    {"line_timeout_s": -1.0}])
def test_invalid_settings_rejected(kwargs):
    with pytest.raises(ValueError):
        StationCfg(**kwargs)


def test_build_returns_unconnected_station():
    station = StationCfg(port=20555, auto_launch=False, timeout_s=2.5).build()
    assert isinstance(station, Station)
    assert station.port == 20555
    assert not station.auto_launch
    assert station.transport.default_timeout == 2.5
    assert not station.connected()


def test_missing_yaml_is_empty(tmp_path):
    assert load_yaml_config(str(tmp_path / "absent.yaml")) == {}
    assert load_yaml_config("") == {}


def test_malformed_yaml_is_empty(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("station: [unclosed\n")
    assert load_yaml_config(str(path)) == {}
    path.write_text("- just\n- a list\n")
    assert load_yaml_config(str(path)) == {}


def test_yaml_overrides_respect_cli(tmp_path):
    path = tmp_path / "station.yaml"
    path.write_text(yaml.safe_dump({"station": {"host": "10.0.0.5", "port": 20600, "bogus": 1}}))

    cfg = StationCfg(port=20501)  # as if set on the command line
    apply_yaml_overrides(cfg, load_yaml_config(str(path)))
    assert cfg.host == "10.0.0.5"
    assert cfg.port == 20501
    assert not hasattr(cfg, "bogus")


def test_yaml_overrides_are_validated():
    with pytest.raises(ValueError):
        apply_yaml_overrides(StationCfg(), {"station": {"timeout_s": -3}})


def test_yaml_without_section_is_ignored():
    cfg = StationCfg()
    assert apply_yaml_overrides(cfg, {"other": {"port": 1}}) is cfg
    assert cfg == StationCfg()


def test_log_level_validated():
    with pytest.raises(ValueError):
        MainConfig(log_level="LOUD")


def test_run_lists_items(station_server, caplog):
    caplog.set_level("INFO")
    server = station_server(
        line("RoboDK") + i32(64) + line("5.6.0") + line("2023-06-01") + STATUS_OK
        + i32(2) + line("Frame 1") + line("UR5") + STATUS_OK
    )
    cfg = MainConfig(station=StationCfg(port=server.port, auto_launch=False))
    assert run(cfg) == 0
    server.join()
    assert server.received == line("Version") + line("G_List_Items")
    assert "UR5" in caplog.text


def test_run_fails_without_station():
    cfg = MainConfig(station=StationCfg(port=free_port(), auto_launch=False, timeout_s=0.2))
    assert run(cfg) == 1


def test_wire_debug_controls_messaging_logger():
    messaging = logging.getLogger("stationlink.common.messaging")
    try:
        setup_root_logger(logging.WARNING)
        assert messaging.level == logging.WARNING
        setup_root_logger(logging.WARNING, wire_debug=True)
        assert messaging.level == logging.DEBUG
    finally:
        messaging.setLevel(logging.NOTSET)
