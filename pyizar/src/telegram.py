"""
Telegram işleme ve ayrıştırma modülü
"""
import logging
import binascii
from typing import Optional, Union

from .protocol import (
    decode_manufacturer, decode_device_type, has_diehl_address_layout, is_manufacturer_specific_ci
)

logger = logging.getLogger(__name__)

# L, C, M(2), A(4), V, T alanları
HEADER_LENGTH = 10

class TelegramHeader:
    """Telegram başlık bilgilerini içeren sınıf"""

    def __init__(self,
                 length: int = 0,
                 control: int = 0,
                 manufacturer: str = '',
                 meter_id: str = '',
                 version: int = 0,
                 meter_type: int = 0,
                 ci_field: Optional[int] = None):
        """
        Args:
            length: Telegram uzunluğu
            control: Kontrol alanı
            manufacturer: Üretici kodu
            meter_id: Sayaç kimliği
            version: Versiyon bilgisi
            meter_type: Sayaç tipi kodu
            ci_field: CI alanı (varsa)
        """
        self.length = length
        self.control = control
        self.manufacturer = manufacturer
        self.meter_id = meter_id
        self.version = version
        self.meter_type = meter_type
        self.ci_field = ci_field
        # PRIOS verisi üreticiye özel CI ile her zaman karıştırılmış gelir
        self.is_encrypted = ci_field is not None and is_manufacturer_specific_ci(ci_field)

    def __str__(self) -> str:
        return (f"TelegramHeader(mfct={self.manufacturer}, id={self.meter_id}, "
                f"ver=0x{self.version:02x}, type=0x{self.meter_type:02x}, "
                f"encrypted={self.is_encrypted})")

class Telegram:
    """
    Alınan bir wM-Bus telegramı

    `frame` alınan baytları, `origin` ise şifre çözmede bağlam olarak
    kullanılan alternatif bayt dizisini tutar. Taşıma katmanı farklı bir
    dizi vermezse `origin` çerçevenin kendisidir.
    """

    def __init__(self, raw_data: Union[str, bytes],
                 original: Union[str, bytes, None] = None,
                 being_analyzed: bool = False):
        """
        Args:
            raw_data: Ham telegram verisi (hex string veya bytes)
            original: Şifre çözme bağlamı için alternatif veri (isteğe bağlı)
            being_analyzed: Toplu analiz modunda mı? (uyarılar bastırılır)
        """
        self.frame = self._to_bytes(raw_data)
        origin = self._to_bytes(original) if original is not None else b''
        self.origin = origin if origin else self.frame
        self.being_analyzed = being_analyzed

        self.header = None

        if self.frame:
            self._parse_header()

    @staticmethod
    def _to_bytes(data: Union[str, bytes]) -> bytes:
        """Hex string veya bytes verisini değiştirilemez bytes'a dönüştürür"""
        if isinstance(data, str):
            try:
                return binascii.unhexlify(data.replace(" ", "").replace("|", ""))
            except binascii.Error as e:
                logger.error(f"Geçersiz hex string: {e}")
                return b''
        return bytes(data)

    def _parse_header(self) -> None:
        """Telegram başlığını ayrıştırır"""
        if len(self.frame) < HEADER_LENGTH:
            logger.error(f"Telegram çok kısa: {len(self.frame)} bytes")
            return

        # M-field (üretici kodu), little-endian
        manufacturer = decode_manufacturer(self.frame[3] << 8 | self.frame[2])

        # A-field (sayaç adresi), ters bayt sırası
        if has_diehl_address_layout(self.frame):
            meter_id = ''.join(f'{b:02x}' for b in reversed(self.frame[6:10]))
            version = self.frame[4]
            meter_type = self.frame[5]
        else:
            meter_id = ''.join(f'{b:02x}' for b in reversed(self.frame[4:8]))
            version = self.frame[8]
            meter_type = self.frame[9]

        ci_field = self.frame[10] if len(self.frame) > HEADER_LENGTH else None

        self.header = TelegramHeader(
            length=self.frame[0],
            control=self.frame[1],
            manufacturer=manufacturer,
            meter_id=meter_id,
            version=version,
            meter_type=meter_type,
            ci_field=ci_field
        )

        logger.debug(f"Telegram başlığı ayrıştırıldı: {self.header}")

    def __len__(self) -> int:
        return len(self.frame)

    def __str__(self) -> str:
        """İnsan okunabilir temsil"""
        if not self.header:
            return "Invalid Telegram"

        result = [f"Telegram from: {self.header.meter_id}"]
        result.append(f"Manufacturer: {self.header.manufacturer}")
        result.append(f"Type: {decode_device_type(self.header.meter_type)} (0x{self.header.meter_type:02x})")
        result.append(f"Version: 0x{self.header.version:02x}")
        result.append(f"Encrypted: {self.header.is_encrypted}")
        return "\n".join(result)
