"""Card-to-library runs through the session, the way a UI drives it."""
import asyncio

from datetime import datetime

from offload.core.config import OffloadConfig
from offload.core.models import ImportProgress, ThumbnailStatus
from offload.services.app_context import create_session

from .fixtures import make_file, make_image


def build_card(root):
    """Card with stills, a RAW, a video, sidecars and two capture days."""
    day_one = datetime(2024, 3, 9, 10, 0, 0)
    day_two = datetime(2024, 3, 10, 18, 30, 0)
    make_image(root / "DCIM" / "100CANON" / "IMG_0001.JPG", mtime=day_one)
    make_image(root / "DCIM" / "100CANON" / "IMG_0002.JPG", mtime=day_two)
    make_file(root / "DCIM" / "100CANON" / "IMG_0003.CR2", b"raw" * 500, mtime=day_one)
    make_file(root / "DCIM" / "100CANON" / "MVI_0004.MP4", b"video" * 500, mtime=day_two)
    make_file(root / "DCIM" / "100CANON" / "._IMG_0001.JPG", b"sidecar")
    make_file(root / "MISC" / "AUTPRINT.MRK", b"print order")


class TestCardToLibrary:
    """Full scan, preview, import and rescan."""

    def test_round_trip(self, tmp_path):
        build_card(tmp_path / "card")
        library = tmp_path / "library"
        config = OffloadConfig(thumbnail_dir=tmp_path / "thumbs")
        events = []
        session = create_session(config, listeners=[events.append])

        async def go():
            files = await session.scan_directory(tmp_path / "card")
            thumbs = await asyncio.gather(*(session.fetch_thumbnail(f.path) for f in files))
            await session.refresh_destination(library)
            await session.start_import([f.path for f in files], library)
            stats = await session.wait_for_import()
            rescanned = await session.scan_directory(library)
            return files, thumbs, stats, rescanned

        files, thumbs, stats, rescanned = asyncio.run(go())

        assert [f.name for f in files] == [
            "IMG_0001.JPG", "IMG_0002.JPG", "IMG_0003.CR2", "MVI_0004.MP4",
        ]
        by_name = {t.source.name: t for t in thumbs}
        assert by_name["IMG_0001.JPG"].status == ThumbnailStatus.GENERATED
        assert by_name["MVI_0004.MP4"].status == ThumbnailStatus.UNSUPPORTED

        assert stats.succeeded == 4
        assert stats.failed == 0
        assert sorted(p.name for p in (library / "20240309").iterdir()) == [
            "IMG_0001.JPG", "IMG_0003.CR2",
        ]
        assert sorted(p.name for p in (library / "20240310").iterdir()) == [
            "IMG_0002.JPG", "MVI_0004.MP4",
        ]

        assert {f.name for f in rescanned} == {f.name for f in files}
        assert session.destination_index.select_new(files) == []

        progress = [e for e in events if isinstance(e, ImportProgress)]
        assert [e.processed for e in progress] == [1, 2, 3, 4]
        assert all(e.to_dict()["lastFileDuration"] >= 0 for e in progress)
