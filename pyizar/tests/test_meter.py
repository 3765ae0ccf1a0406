import copy
import json
import logging

import pytest

from pyizar.src.meter import Meter
from pyizar.src.telegram import Telegram
from pyizar.src.protocol import LinkMode
from pyizar.src.utils.encryption import PRIOS_DEFAULT_KEY1
from pyizar.src.drivers.auto import DriverRegistry, default_registry

SAP_TELEGRAM = "1944304C72242421D401A2013D4013DD8B46A4999C1293E582CC"
# Veri alanının ilk baytı bozulmuş, anahtar doğrulaması başarısız olur
CORRUPTED_SAP_TELEGRAM = "1944304C72242421D401A2013D4013DE8B46A4999C1293E582CC"
DME_TELEGRAM = "2944A511780729662366A20118001378D3B3DB8CEDD77731F25832AAF3DA8CADF9774EA673172E8C61F2"
HYD_TELEGRAM = "19442423860775035048A251520015BEB6B2E1ED623A18FC74A5"


def test_meter_reading_after_successful_telegram():
    meter = Meter("IzarWater", "21242472", "izar")

    assert meter.process_telegram(SAP_TELEGRAM)

    reading = meter.get_reading()
    assert reading["prefix"] == "C19UA"
    assert reading["serial_number"] == "145842"
    assert reading["total_m3"] == 3.488
    assert reading["timestamp"] is not None


def test_new_meter_has_empty_defaults():
    meter = Meter("IzarWater", "21242472", "izar")
    reading = meter.get_reading()

    assert reading["serial_number"] == "000000"
    assert reading["prefix"] == ""
    assert reading["current_alarms"] == "no_alarm"
    assert reading["previous_alarms"] == "no_alarm"
    assert reading["manufacture_year"] == "0"
    assert reading["timestamp"] is None


def test_failed_decryption_keeps_previous_reading():
    meter = Meter("IzarWater", "21242472", "izar", PRIOS_DEFAULT_KEY1)
    assert meter.process_telegram(SAP_TELEGRAM)

    before = copy.deepcopy(meter.reading)
    last_update = meter.last_update

    assert not meter.process_telegram(CORRUPTED_SAP_TELEGRAM)
    assert meter.reading == before
    assert meter.last_update == last_update


def test_malformed_frame_keeps_previous_reading():
    meter = Meter("IzarWater", "21242472", "izar")
    assert meter.process_telegram(SAP_TELEGRAM)
    before = copy.deepcopy(meter.reading)

    for length in (10, 11, 14, 16, 25):
        assert not meter.process_telegram(bytes.fromhex(SAP_TELEGRAM)[:length])
    assert meter.reading == before


def test_garbage_is_ignored():
    meter = Meter("IzarWater", "*", "izar")
    before = copy.deepcopy(meter.reading)

    for data in (b'', b'\x00', "not hex", bytes(10), bytes(64)):
        assert not meter.process_telegram(data)
    assert meter.reading == before


def test_other_meter_id_is_ignored():
    meter = Meter("IzarWater", "12345678", "izar")
    assert not meter.process_telegram(SAP_TELEGRAM)
    assert meter.last_update is None


def test_wildcard_id_accepts_any_meter():
    meter = Meter("AnyIzar", "*", "izar")
    assert meter.process_telegram(SAP_TELEGRAM)
    assert meter.process_telegram(HYD_TELEGRAM)
    assert meter.get_reading()["previous_alarms"] == "leakage"


def test_failure_warns_unless_analyzed(caplog):
    meter = Meter("IzarWater", "21242472", "izar", "0000000000000000")

    with caplog.at_level(logging.DEBUG, logger="pyizar.src.meter"):
        assert not meter.process_telegram(Telegram(SAP_TELEGRAM))
        assert not meter.process_telegram(Telegram(SAP_TELEGRAM, being_analyzed=True))

    levels = [record.levelno for record in caplog.records if record.name == "pyizar.src.meter"]
    assert levels.count(logging.WARNING) == 1
    assert levels.count(logging.DEBUG) == 1


def test_unknown_driver_raises():
    with pytest.raises(ValueError):
        Meter("IzarWater", "21242472", "nosuchdriver", registry=DriverRegistry())


def test_invalid_key_raises():
    with pytest.raises(ValueError):
        Meter("IzarWater", "21242472", "izar", "00112233")


def test_link_mode_suffix():
    assert Meter("IzarWater", "21242472", "izar:T1").link_mode is LinkMode.T1
    assert Meter("IzarWater", "21242472", "izar:XX").link_mode is LinkMode.T1


def test_auto_driver_uses_detection():
    meter = Meter("AutoWater", "*", "auto", registry=default_registry())
    assert meter.get_reading() == {}

    # SAP/0x01 imzası kayıtlı değil
    assert not meter.process_telegram(SAP_TELEGRAM)
    assert meter.get_reading() == {}

    assert meter.process_telegram(HYD_TELEGRAM)
    assert meter.driver.name == "izar"
    assert meter.get_reading()["total_m3"] == 521.602


@pytest.mark.parametrize("telegram_hex, meter_id", [
    (DME_TELEGRAM, "66236629"),
    ("1944A511780779194820A121170013355F8EDB2D03C6912B1E37", "20481979"),
    (HYD_TELEGRAM, "48500375"),
])
def test_diehl_meters_match_by_rewritten_address(telegram_hex, meter_id):
    meter = Meter("IzarWater", meter_id, "auto")

    assert meter.process_telegram(telegram_hex)
    assert meter.last_update is not None


def test_malformed_frame_is_not_reported_as_decryption_failure(caplog):
    meter = Meter("IzarWater", "21242472", "izar")

    with caplog.at_level(logging.WARNING, logger="pyizar.src.meter"):
        assert not meter.process_telegram(bytes.fromhex(SAP_TELEGRAM)[:20])

    messages = [record.getMessage() for record in caplog.records if record.name == "pyizar.src.meter"]
    assert len(messages) == 1
    assert "çok kısa" in messages[0]
    assert "anahtar" not in messages[0]


def test_output_formats():
    meter = Meter("IzarWater", "21242472", "izar")
    assert meter.to_human_readable() == "IzarWater (21242472): No reading"
    assert meter.process_telegram(SAP_TELEGRAM)

    data = json.loads(meter.to_json())
    assert data["media"] == "water"
    assert data["meter"] == "izar"
    assert data["name"] == "IzarWater"
    assert data["id"] == "21242472"
    assert data["last_month_measure_date"] == "2019-09-30"

    fields = meter.to_fields(["name", "id", "prefix", "serial_number", "total_m3"], ";")
    assert fields == "IzarWater;21242472;C19UA;145842;3.488"

    human = meter.to_human_readable()
    assert human.startswith("IzarWater\t21242472\tC19UA\t145842\t3.488 m3")
