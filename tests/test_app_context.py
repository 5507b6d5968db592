"""Tests for the import session wiring."""
import asyncio

import pytest
from datetime import datetime
from pathlib import Path

from offload.core.config import OffloadConfig
from offload.core.errors import ScanError
from offload.core.models import DateSource, ImportComplete, ThumbnailStatus
from offload.services.app_context import create_session

from .fixtures import make_card, make_file, make_image


class FixedPicker:
    """Picker returning a preset answer."""

    def __init__(self, answer):
        self.answer = answer
        self.titles = []

    def pick(self, title):
        self.titles.append(title)
        return self.answer


@pytest.fixture
def config(tmp_path):
    return OffloadConfig(thumbnail_dir=tmp_path / "thumbs")


class TestImportSession:
    """Tests for ImportSession operations."""

    def test_pick_directory(self, config, tmp_path):
        picker = FixedPicker(tmp_path)
        session = create_session(config, picker=picker)

        assert session.pick_directory("Source") == tmp_path.absolute()
        assert picker.titles == ["Source"]

    def test_pick_directory_cancelled(self, config):
        assert create_session(config, picker=FixedPicker(None)).pick_directory() is None
        assert create_session(config).pick_directory() is None

    def test_scan_directory(self, config, tmp_path):
        make_card(tmp_path / "card", count=3)
        session = create_session(config)

        files = asyncio.run(session.scan_directory(tmp_path / "card"))

        assert [f.name for f in files] == ["IMG_0001.JPG", "IMG_0002.JPG", "IMG_0003.JPG"]

    def test_scan_missing_directory(self, config, tmp_path):
        session = create_session(config)

        with pytest.raises(ScanError):
            asyncio.run(session.scan_directory(tmp_path / "nope"))

    def test_refresh_missing_destination(self, config, tmp_path):
        session = create_session(config)

        index = asyncio.run(session.refresh_destination(tmp_path / "not-yet"))

        assert len(index) == 0

    def test_get_metadata(self, config, tmp_path):
        path = make_image(tmp_path / "a.jpg", date_taken=datetime(2022, 5, 6, 7, 8, 9))
        session = create_session(config)

        date = asyncio.run(session.get_metadata(path))

        assert date.source == DateSource.EXIF
        assert date.display_date == "2022-05-06"

    def test_get_thumbnail(self, config, tmp_path):
        path = make_image(tmp_path / "a.jpg", size=(300, 300))
        session = create_session(config)

        async def go():
            first = await session.fetch_thumbnail(path)
            second = await session.get_thumbnail(path)
            return first, second

        first, second = asyncio.run(go())

        assert first.status == ThumbnailStatus.GENERATED
        assert second == first.path
        assert second.parent == config.thumbnail_dir

    def test_video_has_no_thumbnail(self, config, tmp_path):
        path = make_file(tmp_path / "clip.mov")
        session = create_session(config)

        assert asyncio.run(session.get_thumbnail(path)) is None

    def test_import_refreshes_destination(self, config, tmp_path):
        """After an import the index marks the imported files as existing."""
        make_card(tmp_path / "card", count=3)
        library = tmp_path / "library"
        events = []
        session = create_session(config, listeners=[events.append])

        async def go():
            files = await session.scan_directory(tmp_path / "card")
            index = await session.refresh_destination(library)
            assert index.count_new(files) == 3

            ack = await session.start_import([f.path for f in files], library)
            stats = await session.wait_for_import()
            return files, ack, stats

        files, ack, stats = asyncio.run(go())

        assert ack.total == 3
        assert stats.succeeded == 3
        assert isinstance(events[-1], ImportComplete)
        assert session.destination_index.count_new(files) == 0

    def test_cancel_without_import(self, config):
        assert create_session(config).cancel_import().status == "idle"

    def test_wait_without_import(self, config):
        assert asyncio.run(create_session(config).wait_for_import()) is None
