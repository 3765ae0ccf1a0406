"""
Python IZAR - Ana modül

IZAR/PRIOS su sayacı telegram'larını çözmek ve okumaları çeşitli çıktı
formatlarında yazdırmak için kullanılır. Telegramlar komut satırından
(--telegram) veya standart girişten satır satır hex olarak okunur.
"""

import sys
import logging
from typing import Dict, Iterable, List, Optional, Union, Any

from pyizar.src.meter import Meter
from pyizar.src.telegram import Telegram
from pyizar.src.configuration import Configuration
from pyizar.src.drivers.auto import DriverRegistry, register_default_drivers

logger = logging.getLogger('pyizar')

class PyIzar:
    """
    Python IZAR ana uygulama sınıfı

    Sayaç yönetimi, telegram işleme ve çıktı oluşturma işlevlerini sağlar.
    """

    def __init__(self, output=None):
        """
        Args:
            output: Okumaların yazılacağı akış (varsayılan stdout)
        """
        self.registry = register_default_drivers(DriverRegistry())
        self.config = Configuration(self.registry)
        self.output = output or sys.stdout

    @property
    def meters(self) -> List[Meter]:
        return self.config.meters

    def load_config(self, argv: Optional[List[str]] = None) -> bool:
        """
        Komut satırını ve (varsa) yapılandırma dosyasını yükler

        Args:
            argv: Komut satırı argümanları

        Returns:
            bool: Yükleme başarılı mı?
        """
        if not self.config.parse_command_line(argv):
            return False
        self.config.setup_logging()
        return True

    def add_meter(self, name: str, meter_id: str, driver_name: str, key: Optional[str] = None) -> Meter:
        """
        Yeni bir sayaç ekler

        Args:
            name: Sayaç için kullanıcı tanımlı isim
            meter_id: Sayaç kimliği
            driver_name: Kullanılacak sürücü adı
            key: Şifreleme anahtarı (gerekirse)
        """
        return self.config.add_meter(name, meter_id, driver_name, key)

    def process_telegram(self, telegram_data: Union[str, bytes],
                         original: Union[str, bytes, None] = None) -> Optional[Meter]:
        """
        Bir telegramı işler

        Args:
            telegram_data: İşlenecek telegram verisi
            original: Şifre çözme bağlamı için alternatif veri (isteğe bağlı)

        Returns:
            Optional[Meter]: Telegramı işleyen sayaç veya None
        """
        telegram = Telegram(telegram_data, original, being_analyzed=self.config.config['analyze'])

        if not telegram.header:
            logger.error("Geçersiz telegram başlığı")
            return None

        logger.debug(f"Telegram alındı: {telegram.header.meter_id} (üretici: {telegram.header.manufacturer})")

        for meter in self.meters:
            if meter.matches(telegram) and meter.process_telegram(telegram):
                self._handle_meter_update(meter)
                return meter

        logger.debug(f"Sayaç bulunamadı veya işleme hatası: {telegram.header.meter_id}")
        return None

    def analyze_telegram(self, telegram_data: Union[str, bytes]) -> Dict[str, Any]:
        """
        Bir telegramı analiz eder ve uygun sürücüyü önerir

        Args:
            telegram_data: İşlenecek telegram verisi

        Returns:
            Dict[str, Any]: Telegram analiz sonuçları
        """
        telegram = Telegram(telegram_data, being_analyzed=True)

        if not telegram.header:
            return {"error": "Geçersiz telegram başlığı"}

        result = {
            "manufacturer": telegram.header.manufacturer,
            "meter_id": telegram.header.meter_id,
            "version": f"0x{telegram.header.version:02x}",
            "meter_type": f"0x{telegram.header.meter_type:02x}",
            "is_encrypted": telegram.header.is_encrypted
        }

        driver = self.registry.find_driver(telegram)
        if driver:
            result["recommended_driver"] = driver.name

        return result

    def format_output(self, meter: Meter) -> str:
        """Sayacın son okumasını yapılandırılmış formatta döndürür"""
        output_format = self.config.config['format']

        if output_format == 'fields':
            return meter.to_fields(self.config.config['fields'], self.config.config['separator'])
        if output_format == 'hr':
            return meter.to_human_readable()
        return meter.to_json()

    def _handle_meter_update(self, meter: Meter) -> None:
        print(self.format_output(meter), file=self.output)

    def run(self, telegrams: Iterable[str]) -> int:
        """
        Telegram akışını işler

        Args:
            telegrams: Hex telegram satırları

        Returns:
            int: Başarıyla işlenen telegram sayısı
        """
        processed = 0
        for line in telegrams:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if self.process_telegram(line):
                processed += 1
        return processed


def main(argv: Optional[List[str]] = None) -> int:
    """Ana uygulama giriş noktası"""
    app = PyIzar()

    if not app.load_config(argv):
        return 1

    if not app.meters:
        logger.error("Hiç sayaç tanımlanmadı")
        return 1

    try:
        if app.config.telegrams:
            app.run(app.config.telegrams)
        else:
            app.run(sys.stdin)
    except KeyboardInterrupt:
        logger.info("Kullanıcı tarafından durduruldu")

    return 0


if __name__ == "__main__":
    sys.exit(main())
