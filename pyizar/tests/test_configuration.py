import io
import json
import logging

import pytest

from pyizar.pyizar import PyIzar, main
from pyizar.src.configuration import Configuration
from pyizar.src.drivers.auto import DriverRegistry, default_registry, register_default_drivers

SAP_TELEGRAM = "1944304C72242421D401A2013D4013DD8B46A4999C1293E582CC"
DME_TELEGRAM = "2944A511780729662366A20118001378D3B3DB8CEDD77731F25832AAF3DA8CADF9774EA673172E8C61F2"


def test_command_line_meters_and_options():
    config = Configuration()

    assert config.parse_command_line([
        "--format", "fields", "--separator", ",", "--selectfields", "name,total_m3",
        "--telegram", SAP_TELEGRAM,
        "IzarWater", "izar", "21242472", "NOKEY",
        "IzarWater2", "izar", "66236629", "39BC8A10E66D83F8",
    ])

    assert config.config["format"] == "fields"
    assert config.config["separator"] == ","
    assert config.config["fields"] == ["name", "total_m3"]
    assert config.telegrams == [SAP_TELEGRAM]
    assert [meter.name for meter in config.meters] == ["IzarWater", "IzarWater2"]
    assert config.get_meter_by_id("21242472").key is None
    assert config.get_meter_by_name("IzarWater2").key == "39BC8A10E66D83F8"
    assert len(config.get_meter_by_name("IzarWater").keys) == 2


def test_incomplete_meter_definition_fails():
    config = Configuration()
    assert not config.parse_command_line(["IzarWater", "izar", "21242472"])
    assert config.meters == []


def test_invalid_key_on_command_line_fails():
    config = Configuration()
    assert not config.parse_command_line(["IzarWater", "izar", "21242472", "XYZ"])


def test_config_file_and_meter_directory(tmp_path):
    (tmp_path / "pyizar.conf").write_text(
        "[DEFAULT]\nloglevel=debug\nformat=hr\nseparator=|\nanalyze=true\n")
    meters_dir = tmp_path / "pyizar.d"
    meters_dir.mkdir()
    (meters_dir / "water1").write_text(
        "[DEFAULT]\nname=IzarWater\nid=21242472\ndriver=izar\n")
    (meters_dir / "water2").write_text(
        "[DEFAULT]\nname=IzarWater2\nid=66236629\ndriver=izar\nkey=51728910E66D83F8\n")
    (meters_dir / "broken").write_text("[DEFAULT]\nname=Broken\n")

    config = Configuration()
    assert config.parse_command_line(["--useconfig", str(tmp_path), "--format", "json"])

    assert config.config["loglevel"] == "debug"
    assert config.config["format"] == "json"
    assert config.config["separator"] == "|"
    assert config.config["analyze"] is True
    assert [meter["name"] for meter in config.get_meters_list()] == ["IzarWater", "IzarWater2"]
    assert config.get_meters_list()[1]["has_key"]


def test_missing_config_file(tmp_path):
    config = Configuration()
    assert not config.load_config_file(str(tmp_path / "pyizar.conf"))


def test_setup_logging_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "pyizar.log"
    config = Configuration()
    config.config["logfile"] = str(log_file)
    config.config["loglevel"] = "warning"
    root = logging.getLogger()
    level = root.level

    config.setup_logging()
    logging.getLogger("pyizar.test").warning("merhaba")

    for handler in root.handlers:
        handler.flush()
    assert root.level == logging.WARNING
    assert "merhaba" in log_file.read_text()

    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def test_registry():
    registry = default_registry()

    assert registry.get_driver_by_name("IZAR").name == "izar"
    assert registry.get_driver_for_meter("hyd", 0x07, 0x85).name == "izar"
    assert registry.get_driver_for_meter("SAP", 0x15, 0x42).name == "izar"
    assert registry.get_driver_for_meter("HYD", 0x07, 0x99) is None

    drivers = registry.get_drivers_list()
    assert drivers[0]["media"] == "water"
    assert drivers[0]["link_modes"] == ["T1"]
    assert {"manufacturer": "SAP", "device_type": 0x04, "version": None} in drivers[0]["detections"]


def test_registry_rejects_duplicates():
    registry = register_default_drivers(DriverRegistry())
    with pytest.raises(ValueError):
        register_default_drivers(registry)
    assert len(registry.drivers) == 1


def test_app_prints_json_for_matching_meter():
    output = io.StringIO()
    app = PyIzar(output=output)
    app.add_meter("IzarWater", "21242472", "izar")
    app.add_meter("IzarWater2", "66236629", "izar")

    assert app.run(["# yorum", "", SAP_TELEGRAM, DME_TELEGRAM, "1944304C"]) == 2

    lines = output.getvalue().splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert first["name"] == "IzarWater"
    assert first["current_alarms"] == "meter_blocked,underflow"
    assert second["name"] == "IzarWater2"
    assert second["total_m3"] == 16.76
    assert second["prefix"] == ""


def test_app_fields_format():
    output = io.StringIO()
    app = PyIzar(output=output)
    app.config.config["format"] = "fields"
    app.config.config["fields"] = ["name", "id", "prefix", "serial_number", "manufacture_year"]
    app.add_meter("IzarWater", "21242472", "izar")

    assert app.process_telegram(SAP_TELEGRAM) is app.meters[0]
    assert output.getvalue() == "IzarWater;21242472;C19UA;145842;2019\n"


def test_app_analyze_telegram():
    app = PyIzar()
    result = app.analyze_telegram("1944242300000000850700")

    assert result["manufacturer"] == "HYD"
    assert result["recommended_driver"] == "izar"
    assert app.analyze_telegram("19") == {"error": "Geçersiz telegram başlığı"}


def test_main_without_meters_fails():
    root = logging.getLogger()
    level = root.level

    assert main([]) == 1

    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(level)
