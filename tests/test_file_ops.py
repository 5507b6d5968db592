"""Unit tests for file placement and copying."""
import pytest
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from offload.services.file_ops import FileManager, copy_name, date_folder_name

from .fixtures import make_file


class TestNaming:
    """Tests for folder and collision names."""

    def test_date_folder_name(self):
        assert date_folder_name(datetime(2024, 3, 9, 23, 59).timestamp()) == "20240309"

    def test_copy_name(self):
        assert copy_name("photo.jpg") == "photo_copy.jpg"
        assert copy_name("photo.jpg", 2) == "photo_copy_2.jpg"
        assert copy_name("IMG_0001.CR2", 3) == "IMG_0001_copy_3.CR2"

    def test_copy_name_without_extension(self):
        assert copy_name("README") == "README_copy"


class TestFileManager:
    """Tests for FileManager."""

    @pytest.fixture
    def manager(self, tmp_path):
        return FileManager(tmp_path / "library")

    def test_build_output_directory(self, manager, tmp_path):
        mtime = datetime(2023, 12, 31, 8, 0).timestamp()
        assert manager.build_output_directory(mtime) == tmp_path / "library" / "20231231"

    def test_unique_path_free(self, manager, tmp_path):
        directory = tmp_path / "library" / "20240309"
        manager.ensure_directory(directory)

        assert manager.find_unique_path(directory, "a.jpg") == directory / "a.jpg"

    def test_unique_path_collisions(self, manager, tmp_path):
        """Collisions get _copy, then _copy_2."""
        directory = tmp_path / "library" / "20240309"
        make_file(directory / "a.jpg")
        assert manager.find_unique_path(directory, "a.jpg") == directory / "a_copy.jpg"

        make_file(directory / "a_copy.jpg")
        assert manager.find_unique_path(directory, "a.jpg") == directory / "a_copy_2.jpg"

    def test_unique_path_exhausted(self, tmp_path):
        manager = FileManager(tmp_path, max_copies=1)
        make_file(tmp_path / "a.jpg")
        make_file(tmp_path / "a_copy.jpg")

        with pytest.raises(FileExistsError):
            manager.find_unique_path(tmp_path, "a.jpg")

    def test_copy_preserves_bytes_and_mtime(self, manager, tmp_path):
        when = datetime(2024, 3, 9, 12, 0)
        source = make_file(tmp_path / "card" / "a.jpg", b"payload", mtime=when)
        target = tmp_path / "library" / "a.jpg"
        manager.ensure_directory(target.parent)

        copied = manager.copy_file(source, target)

        assert copied == len(b"payload")
        assert target.read_bytes() == b"payload"
        assert int(target.stat().st_mtime) == int(when.timestamp())

    def test_copy_missing_source(self, manager, tmp_path):
        with pytest.raises(OSError):
            manager.copy_file(tmp_path / "gone.jpg", tmp_path / "out.jpg")

    def test_failed_copy_leaves_no_file(self, manager, tmp_path):
        """A copy that dies partway leaves nothing under the real name."""
        source = make_file(tmp_path / "card" / "a.jpg", b"x" * 4096)
        target = tmp_path / "library" / "a.jpg"
        manager.ensure_directory(target.parent)

        def truncated_copy(src, dst):
            Path(dst).write_bytes(b"x" * 10)
            raise OSError(28, "No space left on device")

        with patch("offload.services.file_ops.shutil.copy2", side_effect=truncated_copy):
            with pytest.raises(OSError):
                manager.copy_file(source, target)

        assert list(target.parent.iterdir()) == []

    def test_copy_leaves_no_partial(self, manager, tmp_path):
        source = make_file(tmp_path / "card" / "a.jpg", b"payload")
        target = tmp_path / "library" / "a.jpg"
        manager.ensure_directory(target.parent)

        manager.copy_file(source, target)

        assert [p.name for p in target.parent.iterdir()] == ["a.jpg"]
