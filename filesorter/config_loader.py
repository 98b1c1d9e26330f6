"""
Модуль для загрузки и валидации конфигурации приложения.

Параметры берутся из необязательного INI-файла и перекрываются
аргументами командной строки.
"""

import configparser
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field, replace


DEFAULT_CHUNK_SIZE = 1024 * 1024

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class PathsConfig:
    """Конфигурация исходного и целевого каталогов."""
    source: Optional[Path] = None
    destination: Optional[Path] = None


@dataclass
class SorterConfig:
    """Конфигурация параметров сортировки."""
    types: str = ""
    dry_run: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass
class LoggingConfig:
    """Конфигурация логирования."""
    level: str = 'INFO'
    log_file: Optional[Path] = None
    max_log_size: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Основная конфигурация приложения."""
    paths: PathsConfig = field(default_factory=PathsConfig)
    sorter: SorterConfig = field(default_factory=SorterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigLoader:
    """Класс для загрузки и валидации конфигурации."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Инициализация загрузчика конфигурации.

        Args:
            config_path: Путь к файлу конфигурации (None - значения по умолчанию)
        """
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """
        Загружает конфигурацию из файла.

        Returns:
            Config: Объект конфигурации

        Raises:
            FileNotFoundError: Если файл конфигурации не найден
            ValueError: Если конфигурация некорректна
        """
        if self.config_path is None:
            self._config = Config()
            self._validate_config()
            return self._config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Файл конфигурации не найден: {self.config_path}")

        config_parser = configparser.ConfigParser()

        try:
            config_parser.read(self.config_path, encoding='utf-8')

            self._config = Config(
                paths=self._load_paths_config(config_parser),
                sorter=self._load_sorter_config(config_parser),
                logging=self._load_logging_config(config_parser)
            )

            self._validate_config()

            return self._config

        except (configparser.Error, ValueError) as e:
            raise ValueError(f"Ошибка загрузки конфигурации: {e}")

    def _load_paths_config(self, parser: configparser.ConfigParser) -> PathsConfig:
        """Загружает конфигурацию путей."""
        section = 'paths'

        if not parser.has_section(section):
            return PathsConfig()

        source = parser.get(section, 'source', fallback='').strip()
        destination = parser.get(section, 'destination', fallback='').strip()

        return PathsConfig(
            source=Path(source) if source else None,
            destination=Path(destination) if destination else None
        )

    def _load_sorter_config(self, parser: configparser.ConfigParser) -> SorterConfig:
        """Загружает конфигурацию сортировки."""
        section = 'sorter'

        if not parser.has_section(section):
            return SorterConfig()

        return SorterConfig(
            types=parser.get(section, 'types', fallback=''),
            dry_run=parser.getboolean(section, 'dry_run', fallback=False),
            chunk_size=parser.getint(section, 'chunk_size', fallback=DEFAULT_CHUNK_SIZE)
        )

    def _load_logging_config(self, parser: configparser.ConfigParser) -> LoggingConfig:
        """Загружает конфигурацию логирования."""
        section = 'logging'

        if not parser.has_section(section):
            return LoggingConfig()

        log_file = parser.get(section, 'log_file', fallback='').strip()

        return LoggingConfig(
            level=parser.get(section, 'level', fallback='INFO'),
            log_file=Path(log_file) if log_file else None,
            max_log_size=parser.getint(section, 'max_log_size', fallback=10),
            backup_count=parser.getint(section, 'backup_count', fallback=5)
        )

    def _validate_config(self) -> None:
        """Валидирует загруженную конфигурацию."""
        if not self._config:
            raise ValueError("Конфигурация не загружена")

        validate_config(self._config)

    def get_config(self) -> Config:
        """
        Возвращает загруженную конфигурацию.

        Returns:
            Config: Объект конфигурации

        Raises:
            ValueError: Если конфигурация не загружена
        """
        if self._config is None:
            raise ValueError("Конфигурация не загружена. Вызовите load_config() сначала.")
        return self._config

    def reload_config(self) -> Config:
        """
        Перезагружает конфигурацию из файла.

        Returns:
            Config: Обновленный объект конфигурации
        """
        self._config = None
        return self.load_config()


def validate_config(config: Config) -> None:
    """
    Проверяет значения конфигурации, не зависящие от файловой системы.

    Существование каталогов проверяется перед синхронизацией, а не здесь.

    Raises:
        ValueError: Если значение некорректно
    """
    if config.sorter.chunk_size <= 0:
        raise ValueError("Размер блока копирования должен быть больше 0")

    if config.logging.level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(f"Некорректный уровень логирования: {config.logging.level}")

    if config.logging.max_log_size <= 0:
        raise ValueError("Размер файла лога должен быть больше 0")

    if config.logging.backup_count < 0:
        raise ValueError("Количество архивных логов не может быть отрицательным")


def apply_overrides(config: Config,
                    source: Optional[str] = None,
                    destination: Optional[str] = None,
                    types: Optional[str] = None,
                    dry_run: bool = False,
                    log_level: Optional[str] = None,
                    log_file: Optional[str] = None) -> Config:
    """
    Накладывает аргументы командной строки поверх конфигурации.

    Значение None означает, что аргумент не передан и остается значение из файла.

    Returns:
        Config: Новый объект конфигурации
    """
    paths = config.paths
    if source is not None:
        paths = replace(paths, source=Path(source))
    if destination is not None:
        paths = replace(paths, destination=Path(destination))

    sorter = config.sorter
    if types is not None:
        sorter = replace(sorter, types=types)
    if dry_run:
        sorter = replace(sorter, dry_run=True)

    logging_config = config.logging
    if log_level is not None:
        logging_config = replace(logging_config, level=log_level)
    if log_file is not None:
        logging_config = replace(logging_config, log_file=Path(log_file) if log_file else None)

    merged = Config(paths=paths, sorter=sorter, logging=logging_config)
    validate_config(merged)
    return merged


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Удобная функция для быстрой загрузки конфигурации.

    Args:
        config_path: Путь к файлу конфигурации

    Returns:
        Config: Объект конфигурации
    """
    loader = ConfigLoader(config_path)
    return loader.load_config()
