"""
Wireless M-Bus protokol tanımları

IZAR/PRIOS telegramlarını çözmek için gereken protokol sabitleri, üretici
kodları ve çerçeve varyantı sınıflandırıcısı bu modülde bulunur.
"""
from enum import Enum, IntEnum
import logging

from .errors import MalformedFrame

logger = logging.getLogger(__name__)

class LinkMode(Enum):
    """Desteklenen M-Bus link modları"""
    S1 = "S1"  # Stationary mode 1
    S1M = "S1M"  # Stationary mode 1, alternative
    S2 = "S2"  # Stationary mode 2
    T1 = "T1"  # Frequent transmit mode 1
    T2 = "T2"  # Frequent transmit mode 2
    C1 = "C1"  # Compact mode 1
    C2 = "C2"  # Compact mode 2


class DeviceType(IntEnum):
    """M-Bus cihaz tipleri (EN 13757-3)"""
    OTHER = 0x00
    OIL = 0x01
    ELECTRICITY = 0x02
    GAS = 0x03
    HEAT = 0x04
    STEAM = 0x05
    WARM_WATER = 0x06
    WATER = 0x07
    HEAT_COST_ALLOCATOR = 0x08
    COMPRESSED_AIR = 0x09
    HOT_WATER = 0x11
    COLD_WATER = 0x12
    DUAL_WATER = 0x13
    PRESSURE = 0x14
    AD_CONVERTER = 0x15


class FunctionCode(IntEnum):
    """Wireless M-Bus C alanı fonksiyon kodları"""
    SND_NR = 0x44   # Send, no reply
    SND_IR = 0x46   # Send installation request
    ACC_NR = 0x47   # Access, no reply
    ACC_DMD = 0x48  # Access demand


class ControlInformation(IntEnum):
    """CI alanı kodları"""
    ALARM = 0x71
    STANDARD_DATA = 0x72      # EN 13757-3 uzun başlık
    NO_HEADER = 0x78          # EN 13757-3 başlıksız
    EXTENDED_DATA = 0x7A      # EN 13757-3 kısa başlık
    MANUFACTURER_FIRST = 0xA0  # Üretici özel aralığın başı
    MANUFACTURER_LAST = 0xB7   # Üretici özel aralığın sonu


class FrameVariant(Enum):
    """Üreticiye özel çerçeve yerleşimleri"""
    DEFAULT = "default"
    EXTENDED_MANUFACTURER_HEADER = "extended_manufacturer_header"


# Sınıflandırma için gereken en kısa çerçeve (L, C, M, A, V, T, CI)
MIN_HEADER_LENGTH = 11


def decode_manufacturer(code: int) -> str:
    """
    Üretici kodunu 3 harfli koda dönüştürür

    Args:
        code: 16-bit üretici kodu

    Returns:
        str: 3 karakterli üretici kodu
    """
    # Her 5 bit bir karakter için kullanılır, 3 karakter
    char1 = ((code >> 10) & 0x1F) + 64
    char2 = ((code >> 5) & 0x1F) + 64
    char3 = (code & 0x1F) + 64
    return chr(char1) + chr(char2) + chr(char3)


def encode_manufacturer(code: str) -> int:
    """
    3 harfli kodu üretici koduna dönüştürür

    Args:
        code: 3 karakterli üretici kodu

    Returns:
        int: 16-bit üretici kodu
    """
    if len(code) != 3:
        raise ValueError("Üretici kodu 3 karakter olmalıdır")

    c1 = ord(code[0].upper()) - 64
    c2 = ord(code[1].upper()) - 64
    c3 = ord(code[2].upper()) - 64
    return (c1 << 10) | (c2 << 5) | c3


def decode_device_type(code: int) -> str:
    """Cihaz tipi kodunu açıklamaya dönüştürür"""
    try:
        return DeviceType(code).name.lower().replace('_', ' ')
    except ValueError:
        return f"unknown (0x{code:02x})"


# Diehl grubu üreticileri
MANUFACTURER_DME = encode_manufacturer("DME")  # Diehl Metering
MANUFACTURER_HYD = encode_manufacturer("HYD")  # Hydrometer
MANUFACTURER_SAP = encode_manufacturer("SAP")  # Sappel


def is_manufacturer_specific_ci(ci_field: int) -> bool:
    """CI alanı üreticiye özel aralıkta mı?"""
    return ControlInformation.MANUFACTURER_FIRST <= ci_field <= ControlInformation.MANUFACTURER_LAST


def classify_frame(frame: bytes) -> FrameVariant:
    """
    Açık metin çerçeve başlığına bakarak yerleşim varyantını belirler

    Sappel tarafından gönderilen (C=SND_NR) ve üreticiye özel CI alanı taşıyan
    çerçeveler A alanında seri numarası, üretim yılı ve önek harflerini
    kodlar. Diğer tüm çerçeveler varsayılan yerleşimi kullanır.

    Args:
        frame: Ham çerçeve baytları

    Returns:
        FrameVariant: Çerçeve varyantı

    Raises:
        MalformedFrame: Çerçeve başlık için çok kısa
    """
    if len(frame) < MIN_HEADER_LENGTH:
        raise MalformedFrame(len(frame), MIN_HEADER_LENGTH)

    c_field = frame[1]
    m_field = frame[3] << 8 | frame[2]
    ci_field = frame[10]

    if (m_field == MANUFACTURER_SAP
            and c_field == FunctionCode.SND_NR
            and is_manufacturer_specific_ci(ci_field)):
        return FrameVariant.EXTENDED_MANUFACTURER_HEADER

    return FrameVariant.DEFAULT


# PRIOS adres alanını kendi yerleşimiyle gönderen üreticiler
DIEHL_MANUFACTURERS = (MANUFACTURER_DME, MANUFACTURER_HYD, MANUFACTURER_SAP)


def has_diehl_address_layout(frame: bytes) -> bool:
    """
    Çerçevenin A alanı Diehl PRIOS yerleşiminde mi?

    Genişletilmiş Sappel başlığı dışındaki PRIOS çerçevelerinde versiyon
    4. baytta, cihaz tipi 5. baytta, sayaç kimliği ise 6-9. baytlarda
    bulunur.

    Args:
        frame: Ham çerçeve baytları

    Returns:
        bool: Adres yeniden yorumlanmalı mı?
    """
    if len(frame) < MIN_HEADER_LENGTH:
        return False

    m_field = frame[3] << 8 | frame[2]
    if m_field not in DIEHL_MANUFACTURERS or not is_manufacturer_specific_ci(frame[10]):
        return False

    return classify_frame(frame) is FrameVariant.DEFAULT
