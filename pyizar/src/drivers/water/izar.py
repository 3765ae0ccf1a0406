"""
Diehl IZAR / PRIOS su sayacı sürücüsü

Hydrometer, Sappel ve Diehl Metering tarafından üretilen IZAR radyo
modüllerinin T1 telegramlarını çözer. Veri alanı PRIOS anahtar akışı ile
karıştırılmıştır; pil, gönderim periyodu ve alarm bitleri ise açık metin
başlıktan okunur.

Bit yerleşimleri aşağıda tablo olarak tanımlanır; her tabloyu yalnızca
kendi çıkarma fonksiyonu okur.
"""

import copy
import logging
from typing import Dict, Any, List, NamedTuple, Sequence, Tuple

from pyizar.src.telegram import Telegram
from pyizar.src.errors import DecryptionExhausted, MalformedFrame
from pyizar.src.protocol import DeviceType, FrameVariant, LinkMode, classify_frame
from pyizar.src.drivers.driver_base import DriverBase, DetectionRule
from pyizar.src.utils.encryption import (
    PRIOS_ORIGIN_LENGTH, PRIOS_PAYLOAD_OFFSET, decrypt_prios, uint32_from_bytes
)

logger = logging.getLogger(__name__)

class BitField(NamedTuple):
    """Tek bir bayttan maskelenip kaydırılarak okunan bit grubu"""
    offset: int
    mask: int = 0xFF
    shift: int = 0     # maskeden sonra sağa kaydırma
    position: int = 0  # birleştirilmiş değerdeki konum (sola kaydırma)


def read_bits(data: bytes, parts: Sequence[BitField]) -> int:
    """Bit gruplarını okuyup tek bir tamsayıda birleştirir"""
    value = 0
    for part in parts:
        value |= ((data[part.offset] & part.mask) >> part.shift) << part.position
    return value


# Çözülmüş veri alanı, little-endian
PAYLOAD_LENGTH = 11
TOTAL_CONSUMPTION_OFFSET = 1
LAST_MONTH_CONSUMPTION_OFFSET = 5
PAYLOAD_LAYOUT = {
    "h0_day": (BitField(9, 0x1F),),
    "h0_month": (BitField(10, 0x0F),),
    "h0_year": (BitField(10, 0xF0, 1), BitField(9, 0xE0, 5)),
}

# Açık metin başlık, tüm varyantlarda aynı
FRAME_LAYOUT = {
    "battery_half_years": (BitField(12, 0x1F),),
    "transmit_period_exponent": (BitField(11, 0x0F),),
}

ALARM_LAYOUT: Tuple[Tuple[str, BitField], ...] = (
    ("general_alarm", BitField(11, 0x80, 7)),
    ("leakage_currently", BitField(12, 0x80, 7)),
    ("leakage_previously", BitField(12, 0x40, 6)),
    ("meter_blocked", BitField(12, 0x20, 5)),
    ("back_flow", BitField(13, 0x80, 7)),
    ("underflow", BitField(13, 0x40, 6)),
    ("overflow", BitField(13, 0x20, 5)),
    ("submarine", BitField(13, 0x10, 4)),
    ("sensor_fraud_currently", BitField(13, 0x08, 3)),
    ("sensor_fraud_previously", BitField(13, 0x04, 2)),
    ("mechanical_fraud_currently", BitField(13, 0x02, 1)),
    ("mechanical_fraud_previously", BitField(13, 0x01)),
)

# Sappel genişletilmiş başlığı, origin baytlarından okunur
EXTENDED_HEADER_LAYOUT = {
    "digits": (BitField(7, 0x03, 0, 24), BitField(6, 0xFF, 0, 16),
               BitField(5, 0xFF, 0, 8), BitField(4)),
    "supplier_code": (BitField(9, 0x0F, 0, 1), BitField(8, 0x80, 7)),
    "meter_type": (BitField(8, 0x7C, 2),),
    "diameter": (BitField(8, 0x03, 0, 3), BitField(7, 0xE0, 5)),
}

# Harf kodları '@' karakterine eklenen ofset olarak taşınır
LETTER_BASE = ord('@')

# Alarm metinleri bu sırayla birleştirilir
CURRENT_ALARMS = (
    ("leakage", "leakage_currently"),
    ("meter_blocked", "meter_blocked"),
    ("back_flow", "back_flow"),
    ("underflow", "underflow"),
    ("overflow", "overflow"),
    ("submarine", "submarine"),
    ("sensor_fraud", "sensor_fraud_currently"),
    ("mechanical_fraud", "mechanical_fraud_currently"),
)
PREVIOUS_ALARMS = (
    ("leakage", "leakage_previously"),
    ("sensor_fraud", "sensor_fraud_previously"),
    ("mechanical_fraud", "mechanical_fraud_previously"),
)

NO_ALARM = "no_alarm"
GENERAL_ALARM = "general_alarm"

LITERS_PER_M3 = 1000.0


class IzarAlarms:
    """Açık metin başlıktaki 12 alarm biti"""

    def __init__(self, **flags: bool):
        for name, _ in ALARM_LAYOUT:
            setattr(self, name, bool(flags.pop(name, False)))
        if flags:
            raise TypeError(f"Bilinmeyen alarm bayrakları: {', '.join(flags)}")

    @classmethod
    def from_frame(cls, frame: bytes) -> 'IzarAlarms':
        return cls(**{name: bool(read_bits(frame, (field,))) for name, field in ALARM_LAYOUT})

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IzarAlarms) and vars(self) == vars(other)

    def __repr__(self) -> str:
        active = [name for name, _ in ALARM_LAYOUT if getattr(self, name)]
        return f"IzarAlarms({', '.join(active)})"


def _alarms_text(alarms: IzarAlarms, order: Sequence[Tuple[str, str]]) -> str:
    names = [text for text, flag in order if getattr(alarms, flag)]
    return ",".join(names) if names else NO_ALARM


def current_alarms_text(alarms: IzarAlarms) -> str:
    """Genel alarm varsa diğer tüm güncel alarmları bastırır"""
    if alarms.general_alarm:
        return GENERAL_ALARM
    return _alarms_text(alarms, CURRENT_ALARMS)


def previous_alarms_text(alarms: IzarAlarms) -> str:
    return _alarms_text(alarms, PREVIOUS_ALARMS)


class IzarReading:
    """Bir IZAR sayacının son başarılı okuması (ham değerler)"""

    def __init__(self):
        self.prefix = ""
        self.serial_number = 0
        self.total_water_consumption_l = 0.0
        self.last_month_total_water_consumption_l = 0.0
        self.h0_year = 0
        self.h0_month = 0
        self.h0_day = 0
        self.remaining_battery_life = 0.0
        self.transmit_period_s = 0
        self.manufacture_year = 0
        self.alarms = IzarAlarms()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IzarReading) and vars(self) == vars(other)

    def __repr__(self) -> str:
        return f"IzarReading({vars(self)})"


def manufacture_year_from_two_digits(yy: int) -> int:
    # 70 eşiği geçmiş cihazlar için; 2070'te güncellenmeli
    return 1900 + yy if yy > 70 else 2000 + yy


def h0_year_from_two_digits(yy: int) -> int:
    return 1900 + yy if yy > 80 else 2000 + yy


def format_serial_number(serial_number: int) -> str:
    return f"{serial_number:06d}"


def format_h0_date(year: int, month: int, day: int) -> str:
    """Fatura tarihini YYYY-MM-DD olarak biçimlendirir; ay ve gün 99'a göre kırpılır"""
    return f"{year}-{month % 99:02d}-{day % 99:02d}"


def extract_payload_fields(decoded: bytes) -> Dict[str, Any]:
    """
    Çözülmüş veri alanından tüketim ve fatura tarihi değerlerini okur

    Args:
        decoded: Doğrulanmış, çözülmüş veri

    Returns:
        Dict[str, Any]: Ham alan değerleri
    """
    if len(decoded) < PAYLOAD_LENGTH:
        raise MalformedFrame(len(decoded), PAYLOAD_LENGTH)

    return {
        "total_water_consumption_l": float(uint32_from_bytes(decoded, TOTAL_CONSUMPTION_OFFSET, True)),
        "last_month_total_water_consumption_l": float(
            uint32_from_bytes(decoded, LAST_MONTH_CONSUMPTION_OFFSET, True)),
        "h0_year": h0_year_from_two_digits(read_bits(decoded, PAYLOAD_LAYOUT["h0_year"])),
        "h0_month": read_bits(decoded, PAYLOAD_LAYOUT["h0_month"]),
        "h0_day": read_bits(decoded, PAYLOAD_LAYOUT["h0_day"]),
    }


def extract_frame_fields(frame: bytes) -> Dict[str, Any]:
    """Açık metin başlıktan pil ömrü, gönderim periyodu ve alarmları okur"""
    return {
        "remaining_battery_life": read_bits(frame, FRAME_LAYOUT["battery_half_years"]) / 2.0,
        "transmit_period_s": 1 << (read_bits(frame, FRAME_LAYOUT["transmit_period_exponent"]) + 2),
        "alarms": IzarAlarms.from_frame(frame),
    }


def extract_extended_header(origin: bytes) -> Dict[str, Any]:
    """
    Sappel genişletilmiş başlığından seri numarası, üretim yılı ve öneki okur

    A alanının 26 biti ondalık bir sayı oluşturur: ilk iki basamak üretim
    yılı, kalanı seri numarasıdır. Önek harfleri '@' + ofset olarak kodlanır.

    Args:
        origin: Başlık baytları

    Returns:
        Dict[str, Any]: prefix, serial_number ve manufacture_year
    """
    digits = str(read_bits(origin, EXTENDED_HEADER_LAYOUT["digits"]))
    yy = int(digits[:2])
    serial_number = int(digits[2:] or "0")

    supplier_code = chr(LETTER_BASE + read_bits(origin, EXTENDED_HEADER_LAYOUT["supplier_code"]))
    meter_type = chr(LETTER_BASE + read_bits(origin, EXTENDED_HEADER_LAYOUT["meter_type"]))
    diameter = chr(LETTER_BASE + read_bits(origin, EXTENDED_HEADER_LAYOUT["diameter"]))

    return {
        "prefix": f"{supplier_code}{yy:02d}{meter_type}{diameter}",
        "serial_number": serial_number,
        "manufacture_year": manufacture_year_from_two_digits(yy),
    }


class IzarDriver(DriverBase):
    """Diehl IZAR su sayacı sürücüsü"""

    # Başlık, 4 baytlık PRIOS ön eki ve en az 11 baytlık veri alanı
    MIN_FRAME_LENGTH = PRIOS_PAYLOAD_OFFSET + PAYLOAD_LENGTH

    def __init__(self):
        """Sürücü başlatma"""
        super().__init__()
        self.name = "izar"
        self.description = "Diehl IZAR / PRIOS water meter"
        self.meter_category = "water"
        self.link_modes = [LinkMode.T1]
        self.detections = [
            DetectionRule("HYD", DeviceType.WATER, 0x85),
            DetectionRule("SAP", DeviceType.AD_CONVERTER),
            DetectionRule("SAP", DeviceType.HEAT),
            DetectionRule("SAP", DeviceType.WATER, 0x00),
            DetectionRule("DME", DeviceType.WATER, 0x78),
            DetectionRule("DME", DeviceType.WARM_WATER, 0x78),
            DetectionRule("HYD", DeviceType.WATER, 0x86),
        ]

    def create_reading(self) -> IzarReading:
        return IzarReading()

    def process_telegram(self, telegram: Telegram, keys: Sequence[int],
                         previous: IzarReading) -> IzarReading:
        """
        Telegramı çözer ve yeni bir okuma döndürür

        Args:
            telegram: İşlenecek telegram
            keys: Sıralı aday anahtarlar
            previous: Son geçerli okuma (değiştirilmez)

        Returns:
            IzarReading: Yeni okuma

        Raises:
            MalformedFrame: Çerçeve sabit konumlar için çok kısa
            DecryptionExhausted: Hiçbir anahtar doğrulanmadı
        """
        frame = telegram.frame
        origin = telegram.origin

        if len(frame) < self.MIN_FRAME_LENGTH:
            raise MalformedFrame(len(frame), self.MIN_FRAME_LENGTH)
        if len(origin) < PRIOS_ORIGIN_LENGTH:
            raise MalformedFrame(len(origin), PRIOS_ORIGIN_LENGTH)

        variant = classify_frame(frame)

        decoded = decrypt_prios(origin, frame, keys)
        if not decoded:
            raise DecryptionExhausted(len(keys))

        # Tüm alanlar okunmadan önceki okuma değiştirilmez
        values = {}
        if variant is FrameVariant.EXTENDED_MANUFACTURER_HEADER:
            values.update(extract_extended_header(origin))
        values.update(extract_frame_fields(frame))
        values.update(extract_payload_fields(decoded))

        reading = copy.deepcopy(previous) if previous is not None else self.create_reading()
        for name, value in values.items():
            setattr(reading, name, value)

        logger.debug(f"IZAR okuması ({variant.value}): {reading}")
        return reading

    def format_reading(self, reading: IzarReading) -> Dict[str, Any]:
        return {
            "prefix": reading.prefix,
            "serial_number": format_serial_number(reading.serial_number),
            "total_m3": reading.total_water_consumption_l / LITERS_PER_M3,
            "last_month_total_m3": reading.last_month_total_water_consumption_l / LITERS_PER_M3,
            "last_month_measure_date": format_h0_date(reading.h0_year, reading.h0_month, reading.h0_day),
            "remaining_battery_life_y": reading.remaining_battery_life,
            "current_alarms": current_alarms_text(reading.alarms),
            "previous_alarms": previous_alarms_text(reading.alarms),
            "transmit_period_s": reading.transmit_period_s,
            "manufacture_year": str(reading.manufacture_year),
        }

    def get_fields(self) -> List[Dict[str, Any]]:
        return [
            {"name": "prefix", "unit": None, "type": "string",
             "description": "The alphanumeric prefix printed before serial number on device."},
            {"name": "serial_number", "unit": None, "type": "string",
             "description": "The meter serial number."},
            {"name": "total_m3", "unit": "m3", "type": "volume",
             "description": "The total water consumption recorded by this meter."},
            {"name": "last_month_total_m3", "unit": "m3", "type": "volume",
             "description": "The total water consumption recorded by this meter around end of last month."},
            {"name": "last_month_measure_date", "unit": None, "type": "string",
             "description": "The date when the meter recorded the most recent billing value."},
            {"name": "remaining_battery_life_y", "unit": "y", "type": "time",
             "description": "How many more years the battery is expected to last."},
            {"name": "current_alarms", "unit": None, "type": "string",
             "description": "Alarms currently reported by the meter."},
            {"name": "previous_alarms", "unit": None, "type": "string",
             "description": "Alarms previously reported by the meter."},
            {"name": "transmit_period_s", "unit": "s", "type": "time",
             "description": "The period at which the meter transmits its data."},
            {"name": "manufacture_year", "unit": None, "type": "string",
             "description": "The year during which the meter was manufactured."},
        ]
