"""
Sayaç modeli

Bu modül, bir sayacın anahtarlarını ve son geçerli okumasını tutan sınıfı
tanımlar. Telegramlar sürücüye verilir; okuma yalnızca telegram tamamen
çözüldüğünde tek adımda değiştirilir.
"""
import logging
import json
import datetime
from typing import Dict, List, Optional, Union, Any

from .telegram import Telegram
from .errors import TelegramDropped
from .protocol import LinkMode
from .utils.encryption import initialize_keys

logger = logging.getLogger(__name__)

class Meter:
    """Tek bir fiziksel sayaç"""

    def __init__(self, name: str, meter_id: str, driver_name: str,
                 key: Optional[str] = None, registry=None):
        """
        Args:
            name: Sayaç için kullanıcı tanımlı isim
            meter_id: Sayaç kimliği (8 basamaklı hex, '*' tüm sayaçlar)
            driver_name: Kullanılacak sürücü adı (ör. izar veya izar:T1)
            key: Şifreleme anahtarı (hex string, isteğe bağlı)
            registry: Sürücü kaydı (belirtilmezse varsayılan kayıt)

        Raises:
            ValueError: Sürücü bulunamadı veya anahtar geçersiz
        """
        self.name = name
        self.id = meter_id.lower()
        self.key = key
        self.keys = initialize_keys(key)
        self.last_update = None

        # Link mode ayarlarını ayrıştır (örn. izar:T1)
        parts = driver_name.split(':')
        self.driver_name = parts[0].lower()
        self.link_mode = LinkMode.T1

        if len(parts) > 1:
            try:
                self.link_mode = LinkMode(parts[1].upper())
            except ValueError:
                logger.warning(f"Geçersiz link modu: {parts[1]}, varsayılan T1 kullanılıyor")

        if registry is None:
            from .drivers.auto import default_registry
            registry = default_registry()
        self.registry = registry

        self.driver = None
        if self.driver_name != 'auto':
            self.driver = registry.get_driver_by_name(self.driver_name)
            if not self.driver:
                raise ValueError(f"Sürücü bulunamadı: {self.driver_name}")

        self.reading = self.driver.create_reading() if self.driver else None

    def matches(self, telegram: Telegram) -> bool:
        """Telegram bu sayaca mı ait?"""
        if not telegram.header:
            return False
        return self.id == '*' or telegram.header.meter_id.lower() == self.id

    def process_telegram(self, telegram_data: Union[str, bytes, Telegram]) -> bool:
        """
        Bir telegramı işler ve sayaç değerlerini günceller

        Başarısız telegramlar yok sayılır, önceki okuma korunur.

        Args:
            telegram_data: İşlenecek telegram verisi

        Returns:
            bool: İşleme başarılı mı?
        """
        telegram = telegram_data if isinstance(telegram_data, Telegram) else Telegram(telegram_data)

        if not telegram.header:
            logger.error("Geçersiz telegram başlığı")
            return False

        if not self.matches(telegram):
            return False

        driver = self.driver or self.registry.find_driver(telegram)
        if not driver:
            logger.warning(f"Uygun sürücü bulunamadı: {telegram.header}")
            return False

        previous = self.reading if self.driver is driver else None

        try:
            reading = driver.process_telegram(telegram, self.keys, previous)
        except TelegramDropped as e:
            if telegram.being_analyzed:
                logger.debug(f"({driver.name}) {self.name}: {e}")
            else:
                logger.warning(f"({driver.name}) {self.name}: telegram yok sayılıyor: {e}")
            return False

        # Okuma tek adımda değiştirilir
        self.driver = driver
        self.reading = reading
        self.last_update = datetime.datetime.now(datetime.timezone.utc)
        logger.info(f"Sayaç güncellendi: {self.name} ({self.id})")
        return True

    def get_reading(self) -> Dict[str, Any]:
        """
        Son okuma verilerini döndürür

        Değerler her çağrıda ham okumadan yeniden hesaplanır.

        Returns:
            Dict[str, Any]: Sayaç okuma verileri sözlüğü
        """
        if not self.driver or self.reading is None:
            return {}

        result = self.driver.format_reading(self.reading)
        result["timestamp"] = self.last_update.isoformat() if self.last_update else None
        return result

    def to_json(self) -> str:
        """Son okumayı JSON formatında döndürür"""
        if not self.driver:
            return "{}"
        return self.driver.format_json(self.name, self.id, self.get_reading())

    def to_fields(self, fields: Optional[List[str]] = None, separator: str = ";") -> str:
        """
        Son okumayı alan formatında döndürür

        Args:
            fields: Dahil edilecek alanlar (belirtilmezse tümü)
            separator: Alan ayırıcı

        Returns:
            str: Alan formatında okuma verisi
        """
        if not self.driver:
            return ""
        return self.driver.format_fields(self.name, self.id, self.get_reading(), fields, separator)

    def to_human_readable(self) -> str:
        """Son okumayı insan okunabilir formatta döndürür"""
        if not self.driver or not self.last_update:
            return f"{self.name} ({self.id}): No reading"
        return self.driver.format_human_readable(self.name, self.id, self.get_reading())

    def to_dict(self) -> Dict[str, Any]:
        """Sayaç tanımını döndürür (anahtar hariç)"""
        return {
            "name": self.name,
            "id": self.id,
            "driver": self.driver_name,
            "link_mode": self.link_mode.value,
            "has_key": bool(self.key),
        }

    def __str__(self) -> str:
        return json.dumps(self.to_dict())
