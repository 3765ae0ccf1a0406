"""
PRIOS şifre çözme yardımcıları

Diehl grubu (Hydrometer, Sappel, Diehl Metering) IZAR sayaçları veri alanını
32-bit LFSR tabanlı bir anahtar akışı ile karıştırır. Bu modül anahtar
akışını üretir, aday anahtarları sırayla dener ve ilk doğrulanan sonucu
döndürür.
"""

import logging
import binascii
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

# Anahtar yapılandırılmamışsa denenen herkese açık PRIOS anahtarları
PRIOS_DEFAULT_KEY1 = "39BC8A10E66D83F8"
PRIOS_DEFAULT_KEY2 = "51728910E66D83F8"

# Çözülmüş verinin ilk baytı bu değere eşit olmalı
PRIOS_HEADER_SENTINEL = 0x4B

# Şifreli veri alanı bu konumdan başlar
PRIOS_PAYLOAD_OFFSET = 15

# Origin baytlarında anahtar karıştırması için gereken uzunluk
PRIOS_ORIGIN_LENGTH = 10

KEY_LENGTH = 8


def uint32_from_bytes(data: bytes, offset: int, reverse: bool = False) -> int:
    """
    4 baytı 32-bit tamsayıya dönüştürür

    Args:
        data: Kaynak baytlar
        offset: Başlangıç konumu
        reverse: True ise little-endian okunur

    Returns:
        int: İşaretsiz 32-bit değer
    """
    chunk = bytes(data[offset:offset + 4])
    if len(chunk) != 4:
        raise IndexError(f"uint32 okunamadı: offset={offset}, uzunluk={len(data)}")
    return int.from_bytes(chunk, 'little' if reverse else 'big')


def convert_key(key: str) -> int:
    """
    8 baytlık hex anahtarı 32-bit LFSR tohumuna katlar

    Args:
        key: 16 hex karakterli anahtar

    Returns:
        int: İlk ve ikinci 32-bit kelimenin XOR'u

    Raises:
        ValueError: Anahtar geçersiz
    """
    try:
        key_bytes = binascii.unhexlify(key.replace(" ", ""))
    except binascii.Error as e:
        raise ValueError(f"Geçersiz hex anahtar: {e}") from e

    if len(key_bytes) != KEY_LENGTH:
        raise ValueError(f"Geçersiz anahtar uzunluğu: {len(key_bytes)}, {KEY_LENGTH} byte olmalı")

    return uint32_from_bytes(key_bytes, 0) ^ uint32_from_bytes(key_bytes, 4)


def initialize_keys(confidentiality_key: Optional[str] = None) -> List[int]:
    """
    Sayaç için aday anahtar listesini oluşturur

    Yapılandırılmış bir anahtar varsa yalnızca o kullanılır, yoksa
    varsayılan PRIOS anahtarları sırayla denenir.

    Args:
        confidentiality_key: Yapılandırılmış anahtar (hex string, isteğe bağlı)

    Returns:
        List[int]: Denenecek anahtarlar, sıralı
    """
    keys = []
    if confidentiality_key:
        keys.append(convert_key(confidentiality_key))

    if not keys:
        keys.append(convert_key(PRIOS_DEFAULT_KEY1))
        keys.append(convert_key(PRIOS_DEFAULT_KEY2))

    return keys


def decode_prios(origin: bytes, frame: bytes, key: int) -> bytes:
    """
    Tek bir anahtar ile PRIOS veri alanını çözer

    Args:
        origin: Anahtar karıştırmasında kullanılan başlık baytları
        frame: Şifreli çerçeve
        key: 32-bit anahtar

    Returns:
        bytes: Çözülmüş veri; doğrulama başarısızsa boş
    """
    if len(origin) < PRIOS_ORIGIN_LENGTH or len(frame) <= PRIOS_PAYLOAD_OFFSET:
        return b''

    # Tohum: üretici + adres[0-1], adres[2-3] + versiyon + tip, CI + sonraki 3 bayt
    key ^= uint32_from_bytes(origin, 2)
    key ^= uint32_from_bytes(origin, 6)
    key ^= uint32_from_bytes(frame, 10)

    size = len(frame) - PRIOS_PAYLOAD_OFFSET
    decoded = bytearray(size)

    for i in range(size):
        for _ in range(8):
            bit = (((key >> 1) ^ (key >> 2) ^ (key >> 11) ^ (key >> 31)) & 0x1)
            key = ((key << 1) | bit) & 0xFFFFFFFF

        decoded[i] = frame[i + PRIOS_PAYLOAD_OFFSET] ^ (key & 0xFF)

        if i == 0 and decoded[0] != PRIOS_HEADER_SENTINEL:
            return b''

    return bytes(decoded)


def decrypt_prios(origin: bytes, frame: bytes, keys: Iterable[int]) -> bytes:
    """
    Aday anahtarları sırayla dener, ilk doğrulanan sonucu döndürür

    Args:
        origin: Anahtar karıştırmasında kullanılan başlık baytları
        frame: Şifreli çerçeve
        keys: Sıralı aday anahtarlar

    Returns:
        bytes: Çözülmüş veri; hiçbir anahtar doğrulanmazsa boş
    """
    for index, key in enumerate(keys):
        decoded = decode_prios(origin, frame, key)
        if decoded:
            logger.debug(f"PRIOS verisi {index}. anahtar ile çözüldü: {decoded.hex()}")
            return decoded

    return b''


def find_key_index(origin: bytes, frame: bytes, keys: Sequence[int]) -> Optional[int]:
    """Telegramı doğrulayan ilk anahtarın sırasını döndürür (analiz için)"""
    for index, key in enumerate(keys):
        if decode_prios(origin, frame, key):
            return index
    return None
