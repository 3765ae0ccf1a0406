"""
Telegram çözme hataları

Bu hatalar sürücü içinde akışı kesmek için kullanılır. Sayaç katmanı
yakalar, telegramı yok sayar ve önceki okumayı korur.
"""


class TelegramDropped(ValueError):
    """Telegram işlenemedi, önceki okuma geçerliliğini korur"""


class MalformedFrame(TelegramDropped):
    def __init__(self, length: int, required: int):
        super().__init__(f"Çerçeve çok kısa: {length} bytes, en az {required} gerekli")
        self.length = length
        self.required = required


class DecryptionExhausted(TelegramDropped):
    def __init__(self, key_count: int):
        super().__init__(f"Hiçbir anahtar doğrulanmadı ({key_count} anahtar denendi)")
        self.key_count = key_count
