"""
Sürücü kaydı ve otomatik sürücü tespiti

Sürücüler uygulama başlarken `register_default_drivers` ile açıkça kayda
eklenir. Kayıt, telegram başlığını her sürücünün algılama kurallarıyla
karşılaştırarak uygun sürücüyü bulur.
"""

import logging
from typing import Dict, Optional, Any, List

from pyizar.src.telegram import Telegram, TelegramHeader
from pyizar.src.drivers.driver_base import DriverBase, matches_detection

logger = logging.getLogger(__name__)

class DriverRegistry:
    """Sürücü kaydı"""

    def __init__(self):
        self.drivers: List[DriverBase] = []

    def register(self, driver: DriverBase) -> None:
        """
        Sürücüyü kayda ekler

        Args:
            driver: Sürücü nesnesi

        Raises:
            ValueError: Aynı isimde sürücü zaten kayıtlı
        """
        if self.get_driver_by_name(driver.name):
            raise ValueError(f"Sürücü zaten kayıtlı: {driver.name}")

        self.drivers.append(driver)
        logger.debug(f"Sürücü yüklendi: {driver.name}, algılama: {driver.detections}")

    def find_driver(self, telegram: Telegram) -> Optional[DriverBase]:
        """
        Telegram için ilk uygun sürücüyü bulur

        Args:
            telegram: Telegram nesnesi

        Returns:
            Optional[DriverBase]: Sürücü veya None
        """
        if not telegram or not telegram.header:
            return None

        for driver in self.drivers:
            if driver.can_handle(telegram):
                return driver

        return None

    def get_driver_by_name(self, driver_name: str) -> Optional[DriverBase]:
        """İsimle sürücü bulur"""
        for driver in self.drivers:
            if driver.name.lower() == driver_name.lower():
                return driver

        return None

    def get_driver_for_meter(self, manufacturer: str, meter_type: int, version: int) -> Optional[DriverBase]:
        """
        Sayaç parametrelerine göre sürücü bulur

        Args:
            manufacturer: Üretici kodu
            meter_type: Sayaç tipi
            version: Versiyon

        Returns:
            Optional[DriverBase]: Sürücü veya None
        """
        header = TelegramHeader(manufacturer=manufacturer.upper(), meter_type=meter_type, version=version)
        for driver in self.drivers:
            if any(matches_detection(rule, header) for rule in driver.detections):
                return driver

        return None

    def get_drivers_list(self) -> List[Dict[str, Any]]:
        """Tüm sürücülerin listesini döndürür"""
        result = []

        for driver in self.drivers:
            info = {
                "name": driver.name,
                "description": driver.description,
                "media": driver.meter_category,
                "link_modes": [mode.value for mode in driver.link_modes],
                "detections": [rule.to_dict() for rule in driver.detections]
            }
            result.append(info)

        return result


def register_default_drivers(registry: DriverRegistry) -> DriverRegistry:
    """Yerleşik sürücüleri kayda ekler"""
    from pyizar.src.drivers.water.izar import IzarDriver

    registry.register(IzarDriver())
    logger.debug(f"Toplam {len(registry.drivers)} sürücü yüklendi")
    return registry


def default_registry() -> DriverRegistry:
    """Yerleşik sürücülerle doldurulmuş yeni bir kayıt oluşturur"""
    return register_default_drivers(DriverRegistry())
