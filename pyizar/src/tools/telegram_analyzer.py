"""
Telegram Analiz ve Debug Aracı

IZAR/PRIOS telegramlarını analiz etmek için kullanılır. Çerçeve varyantını
belirler, hangi aday anahtarın doğrulandığını gösterir ve çözülmüş okumayı
yazdırır. Toplu analizde çözülemeyen telegramlar için uyarı verilmez.
"""

import argparse
import json
import logging
import sys
from typing import Dict, Iterable, List, Optional, Any

import colorama

from pyizar.src.telegram import Telegram
from pyizar.src.errors import TelegramDropped
from pyizar.src.protocol import classify_frame, decode_device_type
from pyizar.src.drivers.auto import DriverRegistry, default_registry
from pyizar.src.utils.encryption import initialize_keys, find_key_index

logger = logging.getLogger("telegram_analyzer")

class TelegramAnalyzer:
    """Telegram analiz motoru"""

    def __init__(self, registry: Optional[DriverRegistry] = None):
        """
        Args:
            registry: Sürücü kaydı (belirtilmezse varsayılan)
        """
        self.registry = registry or default_registry()

    def analyze_telegram(self, telegram_hex: str, key: Optional[str] = None,
                         driver_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Telegram'ı analiz eder ve detaylı bilgiler çıkarır

        Args:
            telegram_hex: Analiz edilecek telegram hex string
            key: Şifreleme anahtarı (belirtilmezse varsayılan anahtarlar)
            driver_name: Kullanılacak sürücü (belirtilmezse algılanır)

        Returns:
            Dict[str, Any]: Analiz sonuçları
        """
        telegram = Telegram(telegram_hex, being_analyzed=True)

        if not telegram.header:
            return {"error": "Telegram başlığı ayrıştırılamadı"}

        header = telegram.header
        analysis = {
            "mfct": header.manufacturer,
            "id": header.meter_id,
            "type": header.meter_type,
            "type_name": decode_device_type(header.meter_type),
            "version": header.version,
            "encrypted": header.is_encrypted,
            "length": len(telegram),
        }
        if header.ci_field is not None:
            analysis["ci_field"] = header.ci_field

        try:
            analysis["variant"] = classify_frame(telegram.frame).value
        except TelegramDropped as e:
            analysis["error"] = str(e)
            return analysis

        try:
            keys = initialize_keys(key)
        except ValueError as e:
            analysis["error"] = str(e)
            return analysis

        analysis["key_index"] = find_key_index(telegram.origin, telegram.frame, keys)

        if driver_name:
            driver = self.registry.get_driver_by_name(driver_name)
        else:
            driver = self.registry.find_driver(telegram)
        if not driver:
            analysis["error"] = "Uygun sürücü bulunamadı"
            return analysis
        analysis["recommended_driver"] = driver.name

        try:
            reading = driver.process_telegram(telegram, keys, None)
        except TelegramDropped as e:
            logger.debug(f"Telegram çözülemedi: {e}")
            analysis["decode_error"] = str(e)
            return analysis

        analysis["reading"] = driver.format_reading(reading)
        return analysis

    def analyze_many(self, lines: Iterable[str], key: Optional[str] = None,
                     driver_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """Birden çok telegramı analiz eder; boş ve yorum satırları atlanır"""
        results = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            result = self.analyze_telegram(line, key, driver_name)
            result["telegram"] = line
            results.append(result)
        return results

    def print_telegram_analysis(self, analysis: Dict[str, Any], color: bool = True) -> None:
        """
        Telegram analiz sonuçlarını konsola yazdırır

        Args:
            analysis: Analiz sonuçları
            color: Renkli çıktı kullanılsın mı?
        """
        def paint(text: str, fore: str) -> str:
            return f"{fore}{text}{colorama.Style.RESET_ALL}" if color else text

        if "mfct" not in analysis:
            print(paint(f"HATA: {analysis.get('error', 'Bilinmeyen hata')}", colorama.Fore.RED))
            return

        print(paint("=== Telegram Başlığı ===", colorama.Fore.GREEN))
        print(f"Üretici: {analysis['mfct']}")
        print(f"Sayaç ID: {analysis['id']}")
        print(f"Cihaz tipi: {analysis['type_name']} (0x{analysis['type']:02x})")
        print(f"Versiyon: 0x{analysis['version']:02x}")
        print(f"Şifreli: {'Evet' if analysis['encrypted'] else 'Hayır'}")

        if "ci_field" in analysis:
            print(f"CI alanı: 0x{analysis['ci_field']:02x}")
        if "variant" in analysis:
            print(f"Çerçeve varyantı: {analysis['variant']}")

        if "error" in analysis:
            print(paint(f"HATA: {analysis['error']}", colorama.Fore.RED))
            return

        if analysis.get("key_index") is None:
            print(paint("Hiçbir anahtar doğrulanmadı.", colorama.Fore.YELLOW))
        else:
            print(f"Doğrulanan anahtar: #{analysis['key_index']}")

        if "recommended_driver" in analysis:
            print(f"{paint('Tavsiye edilen sürücü:', colorama.Fore.GREEN)} {analysis['recommended_driver']}")

        if "reading" in analysis:
            print(paint("\n=== Okuma ===", colorama.Fore.GREEN))
            for name, value in analysis["reading"].items():
                print(f"{paint(name + ':', colorama.Fore.CYAN)} {value}")
        elif "decode_error" in analysis:
            print(paint(f"\nVeri alanı çözülemedi: {analysis['decode_error']}", colorama.Fore.YELLOW))


def main(argv: Optional[List[str]] = None) -> None:
    """Komut satırı arayüzü ana fonksiyonu"""
    parser = argparse.ArgumentParser(description="IZAR/PRIOS Telegram Analiz ve Debug Aracı")

    subparsers = parser.add_subparsers(dest="command", help="Komut")

    analyze_parser = subparsers.add_parser("analyze", help="Telegram analizi")
    analyze_parser.add_argument("telegram", help="Analiz edilecek telegram hex string")
    analyze_parser.add_argument("--key", help="PRIOS anahtarı (16 hex karakter)")
    analyze_parser.add_argument("--driver", help="Sürücü adı (belirtilmezse algılanır)")
    analyze_parser.add_argument("--json", action="store_true", help="JSON formatında çıktı")
    analyze_parser.add_argument("--no-color", action="store_true", help="Renksiz çıktı")

    bulk_parser = subparsers.add_parser("bulk", help="Dosyadaki telegramları toplu analiz et")
    bulk_parser.add_argument("--file", help="Telegram'ları içeren dosya (belirtilmezse stdin)")
    bulk_parser.add_argument("--key", help="PRIOS anahtarı (16 hex karakter)")
    bulk_parser.add_argument("--driver", help="Sürücü adı (belirtilmezse algılanır)")
    bulk_parser.add_argument("--json", action="store_true", help="JSON formatında çıktı")
    bulk_parser.add_argument("--no-color", action="store_true", help="Renksiz çıktı")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    colorama.init()

    analyzer = TelegramAnalyzer()

    if args.command == "analyze":
        analysis = analyzer.analyze_telegram(args.telegram, args.key, args.driver)
        if args.json:
            print(json.dumps(analysis, indent=2))
        else:
            analyzer.print_telegram_analysis(analysis, not args.no_color)

    elif args.command == "bulk":
        if args.file:
            with open(args.file, "r") as f:
                results = analyzer.analyze_many(f, args.key, args.driver)
        else:
            results = analyzer.analyze_many(sys.stdin, args.key, args.driver)

        if args.json:
            print(json.dumps(results, indent=2))
        else:
            for result in results:
                print(f"\n{result['telegram']}")
                analyzer.print_telegram_analysis(result, not args.no_color)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
