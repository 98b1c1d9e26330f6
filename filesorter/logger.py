"""
Модуль для настройки и управления логированием приложения.

Обеспечивает централизованную настройку логирования с ротацией файлов,
цветным выводом в консоль и различными уровнями детализации.
"""

import copy
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Iterable, Optional

try:
    from .config_loader import LoggingConfig
except ImportError:
    from config_loader import LoggingConfig


LOGGER_NAME = 'filesorter'
PROGRESS_LOGGER_NAME = 'filesorter.progress'

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
PROGRESS_FORMAT = '%(message)s'


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли."""

    # Цветовые коды ANSI
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Форматирует запись лога с цветом."""
        # Запись общая для всех обработчиков, поэтому красим копию
        if record.levelname in self.COLORS:
            record = copy.copy(record)
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.COLORS['RESET']}"

        return super().format(record)


class FileSorterLogger:
    """Класс для управления логированием приложения File Sorter."""

    def __init__(self, config: LoggingConfig):
        """
        Инициализация логгера.

        Args:
            config: Конфигурация логирования
        """
        self.config = config
        self.logger: Optional[logging.Logger] = None
        self.progress_logger: Optional[logging.Logger] = None
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Настраивает логгер с консольным и (опционально) файловым выводом."""
        level = getattr(logging, self.config.level.upper())

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(level)
        self.progress_logger = logging.getLogger(PROGRESS_LOGGER_NAME)
        self.progress_logger.setLevel(logging.INFO)

        # Закрываем обработчики от предыдущей настройки
        for configured in (self.logger, self.progress_logger):
            for handler in configured.handlers[:]:
                handler.close()
                configured.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        console_handler.setLevel(level)
        self.logger.addHandler(console_handler)

        if self.config.log_file:
            log_file_path = Path(self.config.log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self.config.max_log_size * 1024 * 1024,  # MB -> байты
                backupCount=self.config.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
            file_handler.setLevel(level)
            self.logger.addHandler(file_handler)
            self.progress_logger.addHandler(file_handler)

        # Строки о копировании выводятся в консоль без префиксов при любом уровне
        progress_handler = logging.StreamHandler(sys.stdout)
        progress_handler.setFormatter(logging.Formatter(fmt=PROGRESS_FORMAT))
        self.progress_logger.addHandler(progress_handler)

        # Предотвращаем дублирование сообщений
        self.logger.propagate = False
        self.progress_logger.propagate = False

    def get_logger(self) -> logging.Logger:
        """
        Возвращает настроенный логгер.

        Returns:
            logging.Logger: Настроенный логгер
        """
        if self.logger is None:
            raise RuntimeError("Логгер не инициализирован")
        return self.logger

    def log_sync_start(self, source: Path, destination: Path, filter_set: Iterable[str],
                       dry_run: bool = False) -> None:
        """
        Логирует начало сортировки.

        Args:
            source: Исходный каталог
            destination: Целевой каталог
            filter_set: Допустимые расширения (пустое - без фильтра)
            dry_run: Режим без записи
        """
        extensions = ', '.join(sorted(filter_set)) or 'все'
        self.logger.info(f"🚀 Начало сортировки файлов")
        self.logger.info(f"📁 Источник: {source}")
        self.logger.info(f"📂 Назначение: {destination}")
        self.logger.info(f"🔎 Расширения: {extensions}")
        if dry_run:
            self.logger.info("🧪 Пробный запуск: файлы не будут записаны")

    def log_sync_end(self, copied: int, skipped: int, errored: int, directories: int) -> None:
        """
        Логирует завершение сортировки.

        Args:
            copied: Скопировано файлов
            skipped: Пропущено файлов
            errored: Ошибок
            directories: Обойдено каталогов
        """
        self.logger.info(f"✅ Сортировка завершена")
        self.logger.info(f"📊 Каталогов: {directories}, скопировано: {copied}, "
                         f"пропущено: {skipped}, ошибок: {errored}")

    def log_file_copied(self, source_path: Path, target_path: Path, dry_run: bool = False) -> None:
        """
        Выводит строку "Copied <src> --> <dst>".

        Строка печатается в консоль независимо от уровня логирования,
        в файл лога она попадает с обычным префиксом.

        Args:
            source_path: Исходный путь
            target_path: Целевой путь
            dry_run: Файл только был бы скопирован
        """
        verb = "Would copy" if dry_run else "Copied"
        self.progress_logger.info(f"{verb} {source_path} --> {target_path}")

    def log_file_skipped(self, file_path: Path, reason: str) -> None:
        """Логирует пропущенный файл."""
        self.logger.debug(f"⏭️ Пропущен {file_path}: {reason}")

    def log_file_error(self, file_path: Path, error: Exception) -> None:
        """
        Логирует ошибку при обработке файла.

        Args:
            file_path: Путь к файлу
            error: Исключение
        """
        self.logger.error(f"❌ Ошибка при обработке файла {file_path}: {error}")

    def log_walk_error(self, path: Path, error: Exception) -> None:
        """
        Логирует ошибку обхода дерева каталогов (поддерево пропускается).

        Args:
            path: Путь к недоступному узлу
            error: Исключение
        """
        self.logger.warning(f"⚠️ Каталог {path} пропущен: {error}")

    def log_config_loaded(self, config_path: str) -> None:
        """Логирует успешную загрузку конфигурации."""
        self.logger.info(f"⚙️ Конфигурация загружена из {config_path}")

    def log_system_info(self, info: str) -> None:
        """
        Логирует системную информацию.

        Args:
            info: Информационное сообщение
        """
        self.logger.info(f"ℹ️ {info}")

    def log_warning(self, message: str) -> None:
        """Логирует предупреждение."""
        self.logger.warning(f"⚠️ {message}")

    def log_critical_error(self, message: str, error: Exception = None) -> None:
        """
        Логирует критическую ошибку.

        Args:
            message: Сообщение об ошибке
            error: Исключение (опционально)
        """
        if error:
            self.logger.critical(f"💥 {message}: {error}")
        else:
            self.logger.critical(f"💥 {message}")


def setup_logger(config: LoggingConfig) -> logging.Logger:
    """
    Удобная функция для быстрой настройки логгера.

    Args:
        config: Конфигурация логирования

    Returns:
        logging.Logger: Настроенный логгер
    """
    sorter_logger = FileSorterLogger(config)
    return sorter_logger.get_logger()


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Получает логгер по имени.

    Args:
        name: Имя логгера

    Returns:
        logging.Logger: Логгер
    """
    return logging.getLogger(name)
