"""
Тесты для модуля file_ops.py
"""

import pytest
import tempfile
import shutil
import os
from pathlib import Path
from datetime import datetime
from unittest.mock import Mock, patch

from filesorter.file_ops import (
    CopyError,
    EntryKind,
    FileDescriptor,
    FileOps,
    MetadataError,
    TimestampError,
    TraversalEntry,
    get_destination_path,
    get_extension,
    walk_tree,
)
from filesorter.logger import FileSorterLogger


def make_file(path: Path, content: bytes, modified: datetime) -> Path:
    """Создает файл с заданным содержимым и временем модификации."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    timestamp = modified.timestamp()
    os.utime(path, (timestamp, timestamp))
    return path


@pytest.fixture
def temp_dir():
    """Создает временную директорию для тестов."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


class TestGetExtension:
    """Тесты для get_extension."""

    def test_simple_extension(self):
        assert get_extension("photo.jpg") == "jpg"

    def test_case_is_preserved(self):
        assert get_extension("PHOTO.JPG") == "JPG"

    def test_last_dot_wins(self):
        assert get_extension("archive.tar.gz") == "gz"

    def test_no_dot(self):
        """Имя без точки не имеет расширения."""
        assert get_extension("README") is None

    def test_trailing_dot(self):
        assert get_extension("notes.") is None

    def test_hidden_file(self):
        assert get_extension(".bashrc") == "bashrc"


class TestGetDestinationPath:
    """Тесты для вычисления пути назначения."""

    def test_date_hierarchy(self, temp_dir):
        """Файл от 2 мая 2020 попадает в 2020/May/2."""
        result = get_destination_path(temp_dir, datetime(2020, 5, 2, 12, 0), "abc.txt")

        assert result == temp_dir / "2020" / "May" / "2" / "abc.txt"

    def test_day_without_padding(self, temp_dir):
        result = get_destination_path(temp_dir, datetime(2021, 1, 9, 8, 15), "a.jpg")

        assert result == temp_dir / "2021" / "January" / "9" / "a.jpg"

    def test_end_of_year(self, temp_dir):
        result = get_destination_path(temp_dir, datetime(1999, 12, 31, 23, 59), "party.mp4")

        assert result == temp_dir / "1999" / "December" / "31" / "party.mp4"

    def test_pure_function(self, temp_dir):
        """Повторный вызов дает тот же путь."""
        modified = datetime(2020, 5, 2, 12, 0)

        assert get_destination_path(temp_dir, modified, "x") == get_destination_path(temp_dir, modified, "x")


class TestWalkTree:
    """Тесты для обхода дерева каталогов."""

    def test_preorder_with_directory_done(self, temp_dir):
        """Каталоги выдаются до содержимого, завершение - после."""
        (temp_dir / "a.txt").write_text("a")
        (temp_dir / "b").mkdir()
        (temp_dir / "b" / "c.txt").write_text("c")
        (temp_dir / "d.txt").write_text("d")

        entries = list(walk_tree(temp_dir))

        assert entries == [
            TraversalEntry(temp_dir, EntryKind.DIRECTORY),
            TraversalEntry(temp_dir / "a.txt", EntryKind.FILE),
            TraversalEntry(temp_dir / "b", EntryKind.DIRECTORY),
            TraversalEntry(temp_dir / "b" / "c.txt", EntryKind.FILE),
            TraversalEntry(temp_dir / "b", EntryKind.DIRECTORY_DONE),
            TraversalEntry(temp_dir / "d.txt", EntryKind.FILE),
            TraversalEntry(temp_dir, EntryKind.DIRECTORY_DONE),
        ]

    def test_empty_directory(self, temp_dir):
        entries = list(walk_tree(temp_dir))

        assert [e.kind for e in entries] == [EntryKind.DIRECTORY, EntryKind.DIRECTORY_DONE]

    def test_symlink_to_directory_not_followed(self, temp_dir):
        """Ссылка на каталог выдается как файл и не обходится."""
        (temp_dir / "real").mkdir()
        (temp_dir / "real" / "inside.txt").write_text("x")
        os.symlink(temp_dir / "real", temp_dir / "link")

        entries = list(walk_tree(temp_dir))

        assert TraversalEntry(temp_dir / "link", EntryKind.FILE) in entries
        assert all(e.path != temp_dir / "link" / "inside.txt" for e in entries)

    def test_unreadable_directory_is_skipped(self, temp_dir):
        """Ошибка чтения каталога пропускает только его поддерево."""
        (temp_dir / "locked").mkdir()
        (temp_dir / "locked" / "secret.txt").write_text("s")
        (temp_dir / "open").mkdir()
        (temp_dir / "open" / "public.txt").write_text("p")

        real_scandir = os.scandir

        def fake_scandir(path):
            if Path(path).name == "locked":
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        on_error = Mock()
        with patch("filesorter.file_ops.os.scandir", side_effect=fake_scandir):
            entries = list(walk_tree(temp_dir, on_error=on_error))

        paths = [e.path for e in entries]
        assert temp_dir / "open" / "public.txt" in paths
        assert temp_dir / "locked" / "secret.txt" not in paths
        assert TraversalEntry(temp_dir / "locked", EntryKind.DIRECTORY_DONE) not in entries

        on_error.assert_called_once()
        error_path, error = on_error.call_args[0]
        assert error_path == temp_dir / "locked"
        assert isinstance(error, PermissionError)


class TestFileOps:
    """Тесты для класса FileOps."""

    @pytest.fixture
    def mock_logger(self):
        """Создает мок логгера."""
        return Mock(spec=FileSorterLogger)

    @pytest.fixture
    def file_ops(self, temp_dir, mock_logger):
        """Создает объект FileOps для тестов."""
        return FileOps(temp_dir / "dest", mock_logger, chunk_size=4)

    @pytest.fixture
    def source_file(self, temp_dir):
        return make_file(temp_dir / "src" / "photo.jpg", b"0123456789" * 10, datetime(2020, 5, 2, 12, 0))

    def test_describe_regular_file(self, file_ops, source_file):
        descriptor = file_ops.describe(source_file)

        assert descriptor.path == source_file
        assert descriptor.name == "photo.jpg"
        assert descriptor.size == 100
        assert descriptor.is_regular
        assert descriptor.modified.date() == datetime(2020, 5, 2).date()
        assert descriptor.mtime_ns == os.stat(source_file).st_mtime_ns

    def test_describe_symlink_is_irregular(self, file_ops, source_file, temp_dir):
        link = temp_dir / "src" / "link.jpg"
        os.symlink(source_file, link)

        assert not file_ops.describe(link).is_regular

    def test_describe_missing_file(self, file_ops, temp_dir):
        with pytest.raises(MetadataError):
            file_ops.describe(temp_dir / "missing.jpg")

    def test_destination_for(self, file_ops, source_file, temp_dir):
        descriptor = file_ops.describe(source_file)

        assert file_ops.destination_for(descriptor) == temp_dir / "dest" / "2020" / "May" / "2" / "photo.jpg"

    def test_destination_for_truncates_nanoseconds(self, file_ops, source_file, temp_dir):
        """Файл, измененный за доли микросекунды до полуночи, остается в своем дне."""
        before_midnight = int(datetime(2020, 5, 2, 23, 59, 59).timestamp()) * 1_000_000_000 + 999_999_700
        os.utime(source_file, ns=(before_midnight, before_midnight))

        descriptor = file_ops.describe(source_file)

        assert descriptor.modified == datetime(2020, 5, 2, 23, 59, 59, 999999)
        assert file_ops.destination_for(descriptor) == temp_dir / "dest" / "2020" / "May" / "2" / "photo.jpg"

    def test_destination_for_mtime_out_of_range(self, file_ops, source_file):
        """Время модификации за пределами datetime - ошибка метаданных."""
        descriptor = FileDescriptor(
            path=source_file,
            size=100,
            mtime_ns=300_000_000_000 * 1_000_000_000,
            is_regular=True
        )

        with pytest.raises(MetadataError, match="Некорректное время модификации"):
            file_ops.destination_for(descriptor)

    def test_get_destination_size(self, file_ops, temp_dir):
        target = temp_dir / "dest" / "file.bin"
        assert file_ops.get_destination_size(target) is None

        target.parent.mkdir(parents=True)
        target.write_bytes(b"12345")
        assert file_ops.get_destination_size(target) == 5

    def test_get_destination_size_blocked_by_file(self, file_ops, temp_dir):
        """Обычный файл на месте каталога - ошибка, а не отсутствие файла."""
        (temp_dir / "dest").mkdir()
        (temp_dir / "dest" / "2020").write_text("not a directory")

        with pytest.raises(MetadataError):
            file_ops.get_destination_size(temp_dir / "dest" / "2020" / "May" / "2" / "photo.jpg")

    def test_ensure_parent_directories(self, file_ops, temp_dir):
        target = temp_dir / "dest" / "2020" / "May" / "2" / "photo.jpg"

        directory = file_ops.ensure_parent_directories(target)

        assert directory == target.parent
        assert directory.is_dir()
        # Повторный вызов не падает
        file_ops.ensure_parent_directories(target)

    def test_copy_file_content_and_timestamps(self, file_ops, source_file, temp_dir):
        descriptor = file_ops.describe(source_file)
        target = file_ops.destination_for(descriptor)
        file_ops.ensure_parent_directories(target)

        written = file_ops.copy_file(descriptor, target)

        # Время проверяем до чтения содержимого
        target_stat = os.stat(target)
        assert target_stat.st_mtime_ns == descriptor.mtime_ns
        assert target_stat.st_atime_ns == descriptor.mtime_ns

        assert written == 100
        assert target.read_bytes() == source_file.read_bytes()
        assert list(target.parent.iterdir()) == [target]

    def test_copy_file_long_name(self, file_ops, temp_dir):
        """Имя длиной почти NAME_MAX копируется, временный файл не длиннее него."""
        long_file = make_file(temp_dir / "src" / ("a" * 250 + ".jpg"), b"long", datetime(2020, 5, 2, 12, 0))
        descriptor = file_ops.describe(long_file)
        target = file_ops.destination_for(descriptor)
        file_ops.ensure_parent_directories(target)

        assert file_ops.copy_file(descriptor, target) == 4
        assert target.read_bytes() == b"long"
        assert list(target.parent.iterdir()) == [target]

    def test_copy_file_overwrites_existing(self, file_ops, source_file):
        descriptor = file_ops.describe(source_file)
        target = file_ops.destination_for(descriptor)
        target.parent.mkdir(parents=True)
        target.write_bytes(b"stale")

        file_ops.copy_file(descriptor, target)

        assert target.read_bytes() == source_file.read_bytes()

    def test_copy_file_empty_source(self, file_ops, temp_dir):
        empty = make_file(temp_dir / "src" / "empty.txt", b"", datetime(2020, 5, 2, 12, 0))
        descriptor = file_ops.describe(empty)
        target = file_ops.destination_for(descriptor)
        file_ops.ensure_parent_directories(target)

        assert file_ops.copy_file(descriptor, target) == 0
        assert target.exists()

    def test_copy_file_missing_source(self, file_ops, temp_dir):
        """Ошибка чтения не оставляет файлов в каталоге назначения."""
        descriptor = FileDescriptor(
            path=temp_dir / "src" / "gone.jpg",
            size=10,
            mtime_ns=0,
            is_regular=True
        )
        target = temp_dir / "dest" / "gone.jpg"
        target.parent.mkdir(parents=True)

        with pytest.raises(CopyError):
            file_ops.copy_file(descriptor, target)

        assert list(target.parent.iterdir()) == []

    def test_copy_file_timestamp_failure_leaves_no_file(self, file_ops, source_file):
        descriptor = file_ops.describe(source_file)
        target = file_ops.destination_for(descriptor)
        file_ops.ensure_parent_directories(target)

        with patch("filesorter.file_ops.os.utime", side_effect=PermissionError("denied")):
            with pytest.raises(TimestampError):
                file_ops.copy_file(descriptor, target)

        assert not target.exists()
        assert list(target.parent.iterdir()) == []

    def test_copy_file_timestamp_failure_keeps_old_file(self, file_ops, source_file):
        """Прежний файл назначения остается нетронутым при ошибке."""
        descriptor = file_ops.describe(source_file)
        target = file_ops.destination_for(descriptor)
        target.parent.mkdir(parents=True)
        target.write_bytes(b"old")

        with patch("filesorter.file_ops.os.utime", side_effect=OSError("read-only")):
            with pytest.raises(TimestampError):
                file_ops.copy_file(descriptor, target)

        assert target.read_bytes() == b"old"
