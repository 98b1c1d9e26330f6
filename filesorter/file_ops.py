"""
Модуль для операций с файловой системой.

Обход исходного дерева, получение метаданных файлов, вычисление пути
в структуре каталогов по датам (<год>/<месяц>/<день>) и копирование
с восстановлением времени модификации.
"""

import os
import stat
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

try:
    from .config_loader import DEFAULT_CHUNK_SIZE
    from .logger import FileSorterLogger
except ImportError:
    from config_loader import DEFAULT_CHUNK_SIZE
    from logger import FileSorterLogger


# Названия месяцев не зависят от локали
MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)

TEMP_PREFIX = '.filesorter-'
TEMP_SUFFIX = '.part'


class FileOperationError(Exception):
    """Исключение для ошибок операций с файлами."""
    pass


class IrregularFileError(FileOperationError):
    """Файл не является обычным (символическая ссылка, устройство и т.п.)."""
    pass


class MetadataError(FileOperationError):
    """Не удалось получить метаданные файла."""
    pass


class DirectoryCreationError(FileOperationError):
    """Не удалось создать каталоги назначения."""
    pass


class CopyError(FileOperationError):
    """Ошибка открытия, чтения или записи при копировании."""
    pass


class TimestampError(FileOperationError):
    """Не удалось восстановить время модификации."""
    pass


class EntryKind(Enum):
    """Тип элемента обхода."""
    DIRECTORY = 'directory'
    FILE = 'file'
    DIRECTORY_DONE = 'directory_done'


@dataclass(frozen=True)
class TraversalEntry:
    """Элемент обхода дерева: путь и его тип."""
    path: Path
    kind: EntryKind


@dataclass(frozen=True)
class FileDescriptor:
    """Метаданные файла, необходимые для принятия решения о копировании."""
    path: Path
    size: int
    mtime_ns: int
    is_regular: bool

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def modified(self) -> datetime:
        """Время модификации в локальном часовом поясе, с точностью до микросекунд."""
        # Наносекунды отбрасываются, а не округляются
        seconds, nanoseconds = divmod(self.mtime_ns, 1_000_000_000)
        return datetime.fromtimestamp(seconds) + timedelta(microseconds=nanoseconds // 1000)


def walk_tree(root: Union[str, Path],
              on_error: Optional[Callable[[Path, OSError], None]] = None) -> Iterator[TraversalEntry]:
    """
    Обходит дерево в глубину и выдает элементы в прямом порядке.

    Для каждого каталога выдается DIRECTORY перед его содержимым и
    DIRECTORY_DONE после него. Дочерние элементы идут в порядке имен.
    Символические ссылки на каталоги не раскрываются и выдаются как FILE.
    Если каталог не удалось прочитать, вызывается on_error, а поддерево
    пропускается без DIRECTORY_DONE.

    Args:
        root: Корень обхода
        on_error: Обработчик ошибок чтения каталогов

    Yields:
        TraversalEntry: Элементы обхода
    """
    stack = [(Path(root), EntryKind.DIRECTORY)]

    while stack:
        path, kind = stack.pop()

        if kind is not EntryKind.DIRECTORY:
            yield TraversalEntry(path, kind)
            continue

        yield TraversalEntry(path, EntryKind.DIRECTORY)

        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            if on_error is not None:
                on_error(path, e)
            continue

        children = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                # Тип определится при lstat самого файла
                is_dir = False
            children.append((Path(entry.path), EntryKind.DIRECTORY if is_dir else EntryKind.FILE))

        stack.append((path, EntryKind.DIRECTORY_DONE))
        stack.extend(reversed(children))


def get_extension(name: str) -> Optional[str]:
    """
    Возвращает расширение имени файла без точки.

    Расширение - текст после последней точки. Для имени без точки
    или оканчивающегося точкой возвращает None.
    """
    _, sep, extension = name.rpartition('.')
    if not sep or not extension:
        return None
    return extension


def get_destination_path(destination_root: Union[str, Path], modified: datetime, name: str) -> Path:
    """
    Вычисляет путь файла в структуре каталогов по датам.

    Файл abc.txt, измененный 2 мая 2020 года, попадает в
    <destination_root>/2020/May/2/abc.txt.

    Args:
        destination_root: Корень назначения
        modified: Время модификации файла
        name: Имя файла

    Returns:
        Path: Путь назначения
    """
    return (Path(destination_root)
            / str(modified.year)
            / MONTH_NAMES[modified.month - 1]
            / str(modified.day)
            / name)


class FileOps:
    """Класс для операций с файловой системой."""

    def __init__(self, destination_root: Union[str, Path], logger: FileSorterLogger,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Инициализация операций с файлами.

        Args:
            destination_root: Корень структуры каталогов по датам
            logger: Логгер для записи операций
            chunk_size: Размер блока при копировании в байтах
        """
        self.destination_root = Path(destination_root)
        self.logger = logger
        self.chunk_size = chunk_size

    def describe(self, path: Path) -> FileDescriptor:
        """
        Получает метаданные файла без перехода по символическим ссылкам.

        Raises:
            MetadataError: Если stat завершился ошибкой
        """
        try:
            file_stat = os.lstat(path)
        except OSError as e:
            raise MetadataError(f"Ошибка получения метаданных {path}: {e}")

        return FileDescriptor(
            path=Path(path),
            size=file_stat.st_size,
            mtime_ns=file_stat.st_mtime_ns,
            is_regular=stat.S_ISREG(file_stat.st_mode)
        )

    def destination_for(self, descriptor: FileDescriptor) -> Path:
        """
        Возвращает путь назначения для файла.

        Raises:
            MetadataError: Если время модификации вне диапазона datetime
        """
        try:
            modified = descriptor.modified
        except (ValueError, OverflowError, OSError) as e:
            raise MetadataError(f"Некорректное время модификации {descriptor.path}: {e}")
        return get_destination_path(self.destination_root, modified, descriptor.name)

    def get_destination_size(self, target_path: Path) -> Optional[int]:
        """
        Получает размер уже существующего файла назначения.

        Returns:
            int или None: Размер в байтах или None если файла нет

        Raises:
            MetadataError: Если stat завершился ошибкой, отличной от отсутствия файла
        """
        try:
            return target_path.stat().st_size
        except FileNotFoundError:
            return None
        except OSError as e:
            raise MetadataError(f"Ошибка получения метаданных {target_path}: {e}")

    def ensure_parent_directories(self, target_path: Path) -> Path:
        """
        Создает все недостающие родительские каталоги пути.

        Returns:
            Path: Каталог файла

        Raises:
            DirectoryCreationError: Если каталог создать не удалось
        """
        directory = target_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(f"Ошибка создания каталогов для {target_path}: {e}")
        return directory

    def copy_file(self, descriptor: FileDescriptor, target_path: Path) -> int:
        """
        Копирует файл и переносит на копию время модификации источника.

        Данные пишутся во временный файл .filesorter-<pid>.part рядом с целевым, ему выставляется
        время доступа и модификации источника, после чего он атомарно
        переименовывается в целевой. При ошибке временный файл удаляется,
        а целевой файл остается прежним.

        Args:
            descriptor: Метаданные исходного файла
            target_path: Путь назначения

        Returns:
            int: Количество скопированных байт

        Raises:
            CopyError: Ошибка чтения, записи или переименования
            TimestampError: Ошибка установки времени
        """
        # Имя не зависит от длины имени файла, чтобы не превысить NAME_MAX
        temp_path = target_path.with_name(f"{TEMP_PREFIX}{os.getpid()}{TEMP_SUFFIX}")

        try:
            written = self._stream_copy(descriptor.path, temp_path)

            try:
                os.utime(temp_path, ns=(descriptor.mtime_ns, descriptor.mtime_ns))
            except OSError as e:
                raise TimestampError(f"Ошибка установки времени для {target_path}: {e}")

            try:
                os.replace(temp_path, target_path)
            except OSError as e:
                raise CopyError(f"Ошибка переименования {temp_path} в {target_path}: {e}")

        except FileOperationError:
            self._discard(temp_path)
            raise

        return written

    def _stream_copy(self, source_path: Path, target_path: Path) -> int:
        """Последовательно копирует содержимое файла блоками."""
        written = 0
        try:
            with open(source_path, 'rb') as source_file, open(target_path, 'wb') as target_file:
                for chunk in iter(lambda: source_file.read(self.chunk_size), b""):
                    target_file.write(chunk)
                    written += len(chunk)
        except OSError as e:
            raise CopyError(f"Ошибка копирования {source_path} в {target_path}: {e}")
        return written

    def _discard(self, temp_path: Path) -> None:
        """Удаляет временный файл после неудачного копирования."""
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.log_warning(f"Не удалось удалить временный файл {temp_path}: {e}")
