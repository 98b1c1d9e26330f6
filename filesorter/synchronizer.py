"""
Модуль бизнес-логики сортировки файлов.

Обходит исходное дерево и копирует каждый обычный файл в структуру
каталогов по датам, пропуская уже скопированные файлы того же размера.
Ошибка одного файла не прерывает обработку остальных.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional, Union

try:
    from .config_loader import DEFAULT_CHUNK_SIZE, LoggingConfig
    from .logger import FileSorterLogger
    from .file_ops import (
        EntryKind,
        FileOperationError,
        FileOps,
        IrregularFileError,
        get_extension,
        walk_tree,
    )
except ImportError:
    from config_loader import DEFAULT_CHUNK_SIZE, LoggingConfig
    from logger import FileSorterLogger
    from file_ops import (
        EntryKind,
        FileOperationError,
        FileOps,
        IrregularFileError,
        get_extension,
        walk_tree,
    )


FILTER_SEPARATORS = re.compile(r'[:,]')


class SyncError(Exception):
    """Исключение для ошибок сортировки."""
    pass


class ValidationError(SyncError):
    """Исходный или целевой каталог отсутствует или не является каталогом."""
    pass


class RunCounters:
    """Класс для хранения статистики одного запуска."""

    def __init__(self):
        self.visited_directories = 0
        self.copied_files = 0
        self.skipped_files = 0
        self.errored_files = 0
        self.total_bytes_copied = 0
        self.start_time = None
        self.end_time = None
        self.errors = []

    def record_directory(self) -> None:
        self.visited_directories += 1

    def record_copied(self, written: int) -> None:
        self.copied_files += 1
        self.total_bytes_copied += written

    def record_skipped(self) -> None:
        self.skipped_files += 1

    def record_errored(self, path: Path, error: Exception) -> None:
        """Учитывает файл с ошибкой и сохраняет ее описание."""
        self.errored_files += 1
        self.errors.append({
            'path': str(path),
            'error': str(error),
            'timestamp': datetime.now()
        })

    @property
    def processed_files(self) -> int:
        """Количество обработанных файлов (скопировано + пропущено + ошибки)."""
        return self.copied_files + self.skipped_files + self.errored_files

    def get_duration(self) -> Optional[float]:
        """Возвращает продолжительность запуска в секундах."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def summary(self) -> str:
        """Итоговая строка отчета."""
        return (f"Copied {self.copied_files} files from {self.visited_directories} directories. "
                f"Skipped {self.skipped_files}, Errored {self.errored_files}, "
                f"Bytes copied {self.total_bytes_copied}")

    def to_dict(self) -> Dict:
        """Преобразует статистику в словарь."""
        return {
            'visited_directories': self.visited_directories,
            'copied_files': self.copied_files,
            'skipped_files': self.skipped_files,
            'errored_files': self.errored_files,
            'total_bytes_copied': self.total_bytes_copied,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.get_duration(),
            'error_count': len(self.errors)
        }


def parse_filter_set(types: Optional[str]) -> FrozenSet[str]:
    """
    Строит множество расширений из строки вида "jpg:jpeg:mp4" или "jpg,png".

    Расширения приводятся к нижнему регистру, ведущая точка и пустые
    элементы отбрасываются. Пустое множество означает отсутствие фильтра.
    """
    if not types:
        return frozenset()

    extensions = set()
    for item in FILTER_SEPARATORS.split(types):
        extension = item.strip().lstrip('.').lower()
        if extension:
            extensions.add(extension)
    return frozenset(extensions)


def matches_filter(name: str, filter_set: FrozenSet[str]) -> bool:
    """
    Проверяет, проходит ли имя файла фильтр расширений.

    Пустой фильтр пропускает все файлы. Файл без расширения не
    проходит непустой фильтр.
    """
    if not filter_set:
        return True

    extension = get_extension(name)
    if extension is None:
        return False
    return extension.lower() in filter_set


def validate_directory(path: Optional[Union[str, Path]], role: str) -> Path:
    """
    Проверяет, что путь задан, существует и является каталогом.

    Args:
        path: Проверяемый путь
        role: Название роли каталога для сообщения об ошибке

    Raises:
        ValidationError: Если путь некорректен
    """
    if path is None or str(path) == '':
        raise ValidationError(f"Не указан {role} каталог")

    directory = Path(path)
    if not directory.exists():
        raise ValidationError(f"Путь {directory} не существует")
    if not directory.is_dir():
        raise ValidationError(f"Путь {directory} не является каталогом")
    return directory


class Synchronizer:
    """Основной класс сортировки файлов по датам."""

    def __init__(self,
                 source_root: Union[str, Path],
                 destination_root: Union[str, Path],
                 filter_set: Iterable[str],
                 logger: FileSorterLogger,
                 dry_run: bool = False,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Инициализация синхронизатора.

        Args:
            source_root: Исходный каталог
            destination_root: Корень структуры по датам
            filter_set: Допустимые расширения (регистр и ведущая точка не важны)
            logger: Логгер для записи операций
            dry_run: Только сообщать о копировании, ничего не записывая
            chunk_size: Размер блока при копировании в байтах
        """
        self.source_root = Path(source_root)
        self.destination_root = Path(destination_root)
        self.filter_set = frozenset(extension.lstrip('.').lower() for extension in filter_set)
        self.logger = logger
        self.dry_run = dry_run
        self.file_ops = FileOps(self.destination_root, logger, chunk_size)

    def validate(self) -> None:
        """
        Проверяет исходный и целевой каталоги перед обходом.

        Raises:
            ValidationError: Если один из каталогов некорректен
        """
        validate_directory(self.source_root, "исходный")
        validate_directory(self.destination_root, "целевой")

    def run(self) -> RunCounters:
        """
        Выполняет полный обход исходного каталога.

        Returns:
            RunCounters: Статистика запуска
        """
        counters = RunCounters()
        counters.start_time = datetime.now()

        self.logger.log_sync_start(self.source_root, self.destination_root,
                                   self.filter_set, self.dry_run)

        for entry in walk_tree(self.source_root, on_error=self.logger.log_walk_error):
            if entry.kind is EntryKind.FILE:
                self._visit_file(entry.path, counters)
            elif entry.kind is EntryKind.DIRECTORY_DONE:
                counters.record_directory()

        counters.end_time = datetime.now()

        self.logger.log_sync_end(
            copied=counters.copied_files,
            skipped=counters.skipped_files,
            errored=counters.errored_files,
            directories=counters.visited_directories
        )

        return counters

    def _visit_file(self, path: Path, counters: RunCounters) -> None:
        """
        Обрабатывает один файл: фильтр, сравнение размеров, копирование.

        Каждый файл увеличивает ровно один из счетчиков: скопировано,
        пропущено или ошибки.
        """
        try:
            descriptor = self.file_ops.describe(path)
            if not descriptor.is_regular:
                raise IrregularFileError(f"Файл {path} не является обычным файлом")

            if not matches_filter(descriptor.name, self.filter_set):
                counters.record_skipped()
                self.logger.log_file_skipped(path, "расширение не входит в фильтр")
                return

            target_path = self.file_ops.destination_for(descriptor)

            # Совпадение размеров считаем признаком уже скопированного файла
            existing_size = self.file_ops.get_destination_size(target_path)
            if existing_size is not None and existing_size == descriptor.size:
                counters.record_skipped()
                self.logger.log_file_skipped(path, f"уже скопирован в {target_path}")
                return

            if self.dry_run:
                written = descriptor.size
            else:
                self.file_ops.ensure_parent_directories(target_path)
                written = self.file_ops.copy_file(descriptor, target_path)

        except FileOperationError as e:
            counters.record_errored(path, e)
            self.logger.log_file_error(path, e)
            return

        counters.record_copied(written)
        self.logger.log_file_copied(path, target_path, dry_run=self.dry_run)


def create_synchronizer(source_root: Union[str, Path],
                        destination_root: Union[str, Path],
                        types: Optional[str],
                        logger: FileSorterLogger,
                        dry_run: bool = False,
                        chunk_size: int = DEFAULT_CHUNK_SIZE) -> Synchronizer:
    """
    Удобная функция для создания синхронизатора из строки расширений.

    Returns:
        Synchronizer: Объект синхронизатора
    """
    return Synchronizer(source_root, destination_root, parse_filter_set(types),
                        logger, dry_run=dry_run, chunk_size=chunk_size)


def synchronize(source_root: Union[str, Path],
                destination_root: Union[str, Path],
                filter_set: Iterable[str] = frozenset(),
                logger: Optional[FileSorterLogger] = None,
                dry_run: bool = False) -> RunCounters:
    """
    Проверяет каталоги и копирует файлы в структуру по датам.

    Args:
        source_root: Исходный каталог
        destination_root: Корень структуры по датам
        filter_set: Допустимые расширения (пустое - все файлы)
        logger: Логгер (по умолчанию консольный уровня INFO)
        dry_run: Только сообщать о копировании

    Returns:
        RunCounters: Статистика запуска

    Raises:
        ValidationError: Если каталоги некорректны
    """
    if logger is None:
        logger = FileSorterLogger(LoggingConfig())

    synchronizer = Synchronizer(source_root, destination_root, filter_set, logger, dry_run=dry_run)
    synchronizer.validate()
    return synchronizer.run()
