"""
Loglama yardımcıları
"""

import logging
import sys
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'critical': logging.CRITICAL
}


def parse_level(level_name: str) -> int:
    """Metin log seviyesini logging sabitine dönüştürür (bilinmeyen: INFO)"""
    return LOG_LEVELS.get(str(level_name).lower(), logging.INFO)


def setup_logger(
    name: Optional[str] = None,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True
) -> logging.Logger:
    """
    Logger ayarlarını yapılandırır

    Var olan handler'lar temizlenir, böylece tekrar çağrıldığında
    mesajlar çoğalmaz.

    Args:
        name: Logger adı (None: kök logger)
        level: Log seviyesi
        log_file: Log dosyası (isteğe bağlı)
        console: Konsola log yapılsın mı?

    Returns:
        logging.Logger: Yapılandırılmış logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    # Konsol handler, çıktı stdout'a yazıldığı için stderr
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
