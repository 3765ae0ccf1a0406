"""
Tüm sayaç sürücüleri için temel sınıf

Bu modül, tüm sayaç sürücülerinin miras alması gereken temel sınıfı ve
sürücü seçiminde kullanılan algılama kurallarını tanımlar.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Any, List, Sequence

from ..telegram import Telegram, TelegramHeader
from ..protocol import LinkMode, encode_manufacturer

logger = logging.getLogger(__name__)

class DetectionRule:
    """Üretici, cihaz tipi ve (isteğe bağlı) versiyondan oluşan algılama imzası"""

    def __init__(self, manufacturer: str, device_type: int, version: Optional[int] = None):
        """
        Args:
            manufacturer: 3 harfli üretici kodu
            device_type: Cihaz tipi kodu
            version: Versiyon; None her versiyonla eşleşir
        """
        self.manufacturer = manufacturer.upper()
        self.manufacturer_code = encode_manufacturer(self.manufacturer)
        self.device_type = device_type
        self.version = version

    def __repr__(self) -> str:
        version = "*" if self.version is None else f"0x{self.version:02x}"
        return f"DetectionRule({self.manufacturer}, 0x{self.device_type:02x}, {version})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manufacturer": self.manufacturer,
            "device_type": self.device_type,
            "version": self.version
        }


def matches_detection(rule: DetectionRule, header: TelegramHeader) -> bool:
    """
    Başlığın algılama kuralına uyup uymadığını kontrol eder

    Args:
        rule: Algılama kuralı
        header: Telegram başlığı

    Returns:
        bool: Eşleşme var mı?
    """
    if header.manufacturer != rule.manufacturer:
        return False
    if header.meter_type != rule.device_type:
        return False
    if rule.version is not None and header.version != rule.version:
        return False
    return True


class DriverBase(ABC):
    """Sayaç sürücüleri için soyut temel sınıf"""

    def __init__(self):
        """Sürücü başlatma"""
        self.name = "base"
        self.description = "Base driver"
        self.meter_category = "unknown"
        self.link_modes: List[LinkMode] = []
        self.detections: List[DetectionRule] = []

    def can_handle(self, telegram: Telegram) -> bool:
        """
        Bu sürücünün telegram'ı işleyip işleyemeyeceğini kontrol eder

        Args:
            telegram: Telegram nesnesi

        Returns:
            bool: Bu sürücü telegramı işleyebilir mi?
        """
        if not telegram or not telegram.header:
            return False

        return any(matches_detection(rule, telegram.header) for rule in self.detections)

    @abstractmethod
    def create_reading(self) -> Any:
        """Sıfır değerli, boş bir okuma nesnesi oluşturur"""

    @abstractmethod
    def process_telegram(self, telegram: Telegram, keys: Sequence[int], previous: Any) -> Any:
        """
        Telegramı çözerek yeni bir okuma nesnesi üretir

        Önceki okuma değiştirilmez. Telegram işlenemezse TelegramDropped
        türünden bir hata fırlatılır.

        Args:
            telegram: İşlenecek telegram
            keys: Sıralı aday anahtarlar
            previous: Sayacın son geçerli okuması

        Returns:
            Any: Yeni okuma nesnesi
        """

    @abstractmethod
    def format_reading(self, reading: Any) -> Dict[str, Any]:
        """
        Okuma nesnesinden raporlanacak değerleri hesaplar

        Args:
            reading: Okuma nesnesi

        Returns:
            Dict[str, Any]: Alan adı -> değer
        """

    def get_fields(self) -> List[Dict[str, Any]]:
        """
        Bu sürücü tarafından desteklenen alanların listesini döndürür

        Returns:
            List[Dict[str, Any]]: Alan bilgileri listesi
        """
        return []

    def format_json(self, name: str, meter_id: str, reading: Dict[str, Any]) -> str:
        """
        Okuma verisini JSON formatında biçimlendirir

        Args:
            name: Sayaç adı
            meter_id: Sayaç kimliği
            reading: Okuma verileri sözlüğü

        Returns:
            str: JSON formatında veri
        """
        result = {
            "media": self.meter_category,
            "meter": self.name,
            "name": name,
            "id": meter_id,
        }
        result.update(reading)
        return json.dumps(result)

    def format_fields(self, name: str, meter_id: str, reading: Dict[str, Any],
                      fields: Optional[List[str]] = None, separator: str = ";") -> str:
        """
        Okuma verisini ayırıcı ile birleştirilmiş alanlar olarak biçimlendirir

        Args:
            name: Sayaç adı
            meter_id: Sayaç kimliği
            reading: Okuma verileri sözlüğü
            fields: Dahil edilecek alanlar (belirtilmezse tümü)
            separator: Alan ayırıcı

        Returns:
            str: Alan formatında veri
        """
        result = {"name": name, "id": meter_id}
        result.update(reading)

        if not fields:
            fields = list(result.keys())

        values = [str(result.get(field, "")) for field in fields]
        return separator.join(values)

    def format_human_readable(self, name: str, meter_id: str, reading: Dict[str, Any]) -> str:
        """Okuma verisini insan okunabilir formatta biçimlendirir"""
        units = {field["name"]: field.get("unit") for field in self.get_fields()}
        parts = [name, meter_id]

        for key, value in reading.items():
            if key == 'timestamp':
                continue
            unit = units.get(key)
            parts.append(f"{value} {unit}" if unit else f"{value}")

        if 'timestamp' in reading:
            parts.append(reading['timestamp'])

        return '\t'.join(map(str, parts))
