"""
Konfigürasyon işleme modülü

Bu modül, yapılandırma dosyaları ve komut satırı argümanlarını işlemek için
kullanılır. Sayaç tanımlarını yönetir ve program davranışını yapılandırır.
"""
import os
import logging
import configparser
from typing import Dict, List, Optional, Any
import argparse

from .meter import Meter
from .drivers.auto import DriverRegistry, default_registry
from .utils.logger import parse_level, setup_logger

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'pyizar.conf'
METERS_DIR_NAME = 'pyizar.d'

class Configuration:
    """pyizar yapılandırma yöneticisi"""

    def __init__(self, registry: Optional[DriverRegistry] = None):
        """
        Args:
            registry: Sayaçların kullanacağı sürücü kaydı
        """
        self.registry = registry or default_registry()
        self.meters: List[Meter] = []
        self.telegrams: List[str] = []
        self.config = {
            "loglevel": "info",
            "format": "json",
            "logfile": None,
            "separator": ";",
            "fields": [],
            "analyze": False
        }

    def load_config_file(self, config_file: str) -> bool:
        """
        Yapılandırma dosyasını yükler

        Args:
            config_file: Yapılandırma dosyası yolu

        Returns:
            bool: Yükleme başarılı mı?
        """
        if not os.path.isfile(config_file):
            logger.error(f"Yapılandırma dosyası bulunamadı: {config_file}")
            return False

        parser = configparser.ConfigParser(allow_no_value=True)
        try:
            parser.read(config_file)
        except configparser.Error as e:
            logger.error(f"Yapılandırma dosyası yükleme hatası: {config_file} - {e}")
            return False

        section = parser['DEFAULT']

        for option in ('loglevel', 'format', 'logfile', 'separator'):
            if option in section:
                self.config[option] = section[option]

        if 'selectfields' in section:
            self.config['fields'] = section['selectfields'].split(',')

        if 'analyze' in section:
            self.config['analyze'] = section.getboolean('analyze')

        # Sayaç yapılandırması
        meters_dir = os.path.join(os.path.dirname(config_file), METERS_DIR_NAME)
        if os.path.isdir(meters_dir):
            self._load_meters_from_directory(meters_dir)

        logger.info(f"Yapılandırma dosyası yüklendi: {config_file}")
        return True

    def _load_meters_from_directory(self, directory: str) -> None:
        """
        Belirtilen dizindeki sayaç yapılandırma dosyalarını yükler

        Args:
            directory: Sayaç yapılandırma dosyalarının bulunduğu dizin
        """
        logger.info(f"Sayaç dizini taranıyor: {directory}")

        for filename in sorted(os.listdir(directory)):
            file_path = os.path.join(directory, filename)

            if not os.path.isfile(file_path):
                continue

            try:
                parser = configparser.ConfigParser()
                parser.read(file_path)

                section = parser['DEFAULT']
                required_fields = ['name', 'id', 'driver']

                if not all(field in section for field in required_fields):
                    logger.warning(f"Eksik sayaç parametreleri: {file_path}")
                    continue

                self.add_meter(section['name'], section['id'], section['driver'],
                               section.get('key', None))

            except (configparser.Error, ValueError) as e:
                logger.error(f"Sayaç yapılandırma hatası: {file_path} - {e}")

    def parse_command_line(self, argv: Optional[List[str]] = None) -> bool:
        """
        Komut satırı argümanlarını ayrıştırır

        Args:
            argv: Argümanlar (belirtilmezse sys.argv)

        Returns:
            bool: Ayrıştırma başarılı mı?
        """
        parser = argparse.ArgumentParser(description='Python IZAR/PRIOS Meter Reader')

        parser.add_argument('--debug', action='store_true', help='Debug modu aktif')
        parser.add_argument('--verbose', action='store_true', help='Ayrıntılı çıktı')
        parser.add_argument('--silent', action='store_true', help='Sessiz mod')
        parser.add_argument('--format', choices=['json', 'fields', 'hr'],
                          help='Çıktı formatı')
        parser.add_argument('--separator', help='Alan ayırıcı')
        parser.add_argument('--logfile', help='Log dosyası')
        parser.add_argument('--useconfig', help='Yapılandırma dizini')
        parser.add_argument('--selectfields', help='Seçilecek alan listesi')
        parser.add_argument('--analyze', action='store_true',
                          help='Analiz modu, çözülemeyen telegramlar için uyarı verilmez')
        parser.add_argument('--telegram', action='append', default=[],
                          help='İşlenecek telegram (hex), tekrarlanabilir')

        # Sayaç dörtlüleri: name driver id key
        parser.add_argument('args', nargs='*', help='Sayaç tanımları: name driver id key')

        args = parser.parse_args(argv)

        if args.useconfig:
            config_file = os.path.join(args.useconfig, CONFIG_FILE_NAME)
            if not self.load_config_file(config_file):
                return False

        # Komut satırı dosyadaki ayarları ezer
        if args.debug:
            self.config['loglevel'] = 'debug'
        elif args.verbose:
            self.config['loglevel'] = 'info'
        elif args.silent:
            self.config['loglevel'] = 'error'

        if args.format:
            self.config['format'] = args.format

        if args.separator:
            self.config['separator'] = args.separator

        if args.logfile:
            self.config['logfile'] = args.logfile

        if args.selectfields:
            self.config['fields'] = args.selectfields.split(',')

        if args.analyze:
            self.config['analyze'] = True

        self.telegrams.extend(args.telegram)

        if len(args.args) % 4 != 0:
            logger.error(f"Eksik sayaç parametreleri: {args.args[len(args.args) - len(args.args) % 4:]}")
            return False

        for i in range(0, len(args.args), 4):
            name, driver, meter_id, key = args.args[i:i + 4]

            # NOKEY ifadesi için boş anahtar
            if key.upper() == 'NOKEY':
                key = None

            try:
                self.add_meter(name, meter_id, driver, key)
            except ValueError as e:
                logger.error(f"Sayaç eklenemedi: {name} - {e}")
                return False

        return True

    def setup_logging(self) -> None:
        """Log yapılandırmasını ayarlar"""
        setup_logger(level=parse_level(self.config['loglevel']), log_file=self.config['logfile'])

        if self.config['logfile']:
            logger.info(f"Log dosyası: {self.config['logfile']}")

    def add_meter(self, name: str, meter_id: str, driver_name: str, key: Optional[str] = None) -> Meter:
        """
        Yeni bir sayaç ekler

        Args:
            name: Sayaç için kullanıcı tanımlı isim
            meter_id: Sayaç kimliği
            driver_name: Kullanılacak sürücü adı
            key: Şifreleme anahtarı (gerekirse)

        Returns:
            Meter: Eklenen sayaç
        """
        meter = Meter(name, meter_id, driver_name, key, registry=self.registry)
        self.meters.append(meter)
        logger.info(f"Sayaç eklendi: {name} ({meter_id})")
        return meter

    def get_meter_by_id(self, meter_id: str) -> Optional[Meter]:
        for meter in self.meters:
            if meter.id == meter_id.lower():
                return meter
        return None

    def get_meter_by_name(self, name: str) -> Optional[Meter]:
        for meter in self.meters:
            if meter.name == name:
                return meter
        return None

    def get_meters_list(self) -> List[Dict[str, Any]]:
        return [meter.to_dict() for meter in self.meters]
