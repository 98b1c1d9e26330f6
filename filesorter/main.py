"""
Главный модуль CLI интерфейса для утилиты сортировки файлов.

Разбирает аргументы, проверяет каталоги, запускает копирование
и выводит итоговый отчет.
"""

import argparse
import sys
from typing import List, Optional

try:
    from .config_loader import apply_overrides, load_config
    from .logger import FileSorterLogger
    from .synchronizer import (
        RunCounters,
        Synchronizer,
        ValidationError,
        create_synchronizer,
    )
except ImportError:
    from config_loader import apply_overrides, load_config
    from logger import FileSorterLogger
    from synchronizer import (
        RunCounters,
        Synchronizer,
        ValidationError,
        create_synchronizer,
    )


MAX_REPORTED_ERRORS = 10


class FileSorterCLI:
    """Класс для обработки команд CLI."""

    def __init__(self):
        self.config = None
        self.logger = None
        self.synchronizer: Optional[Synchronizer] = None

    def setup(self, args) -> bool:
        """
        Инициализирует CLI: конфигурация, логгер, синхронизатор.

        Args:
            args: Аргументы командной строки

        Returns:
            bool: True если инициализация успешна
        """
        try:
            config = load_config(args.config)
            self.config = apply_overrides(
                config,
                source=args.source,
                destination=args.destination,
                types=args.types,
                dry_run=args.dry_run,
                log_level='DEBUG' if args.verbose else args.log_level,
                log_file=args.log_file
            )
        except (FileNotFoundError, ValueError) as e:
            print(f"❌ Ошибка конфигурации: {e}")
            return False

        try:
            self.logger = FileSorterLogger(self.config.logging)
        except OSError as e:
            print(f"❌ Ошибка настройки логирования: {e}")
            return False

        if args.config:
            self.logger.log_config_loaded(args.config)

        paths = self.config.paths
        if paths.source is None or paths.destination is None:
            print("Usage: filesorter --source <source path> --destination <destination path> [--types jpg:jpeg:mp4]")
            return False

        self.synchronizer = create_synchronizer(
            paths.source,
            paths.destination,
            self.config.sorter.types,
            self.logger,
            dry_run=self.config.sorter.dry_run,
            chunk_size=self.config.sorter.chunk_size
        )
        return True

    def cmd_sort(self, args) -> int:
        """
        Команда сортировки файлов.

        Args:
            args: Аргументы командной строки

        Returns:
            int: Код возврата (0 - запуск завершен, 1 - некорректные каталоги)
        """
        try:
            self.synchronizer.validate()
        except ValidationError as e:
            print(f"❌ {e}")
            return 1

        counters = self.synchronizer.run()
        print_report(counters)

        # Ошибки отдельных файлов не меняют код возврата
        return 0


def print_report(counters: RunCounters) -> None:
    """Выводит итоговый отчет запуска."""
    print("Completed !")
    print(counters.summary())

    duration = counters.get_duration()
    if duration is not None:
        print(f"⏱️ Продолжительность: {duration:.2f} сек")

    if counters.errors:
        print(f"\n⚠️ Обнаружено {len(counters.errors)} ошибок:")
        for error in counters.errors[:MAX_REPORTED_ERRORS]:
            print(f"   • {error['path']}: {error['error']}")
        if len(counters.errors) > MAX_REPORTED_ERRORS:
            print(f"   ... и еще {len(counters.errors) - MAX_REPORTED_ERRORS} ошибок")


def create_parser() -> argparse.ArgumentParser:
    """
    Создает парсер аргументов командной строки.

    Returns:
        argparse.ArgumentParser: Настроенный парсер
    """
    parser = argparse.ArgumentParser(
        prog='filesorter',
        description="Копирование файлов в структуру каталогов по датам изменения",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Скопировать все файлы
  filesorter --source ~/camera --destination ~/photos

  # Только фото и видео
  filesorter --source ~/camera --destination ~/photos --types jpg:jpeg:mp4

  # Посмотреть, что будет скопировано
  filesorter --source ~/camera --destination ~/photos --dry-run

  # Параметры из файла конфигурации
  filesorter --config config/settings.ini
        """
    )

    parser.add_argument(
        '--source',
        help='Исходный каталог'
    )
    parser.add_argument(
        '--destination',
        help='Каталог, в который копируются и сортируются файлы'
    )
    parser.add_argument(
        '--types',
        help='Допустимые расширения через ":", например jpg:jpeg:mp4 (по умолчанию: все файлы)'
    )
    parser.add_argument(
        '--config',
        help='Путь к файлу конфигурации (INI)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Показать, что будет скопировано, ничего не записывая'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Уровень логирования (по умолчанию: INFO)'
    )
    parser.add_argument(
        '--log-file',
        help='Файл лога с ротацией'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Подробный вывод'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Главная функция CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    cli = FileSorterCLI()

    if not cli.setup(args):
        return 1

    try:
        return cli.cmd_sort(args)
    except KeyboardInterrupt:
        print("\n⚠️ Операция прервана пользователем")
        return 1


if __name__ == "__main__":
    sys.exit(main())
