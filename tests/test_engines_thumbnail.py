"""Unit tests for thumbnail strategies and the fallback chain."""
import pytest
from pathlib import Path
from unittest.mock import patch
from PIL import Image

from offload.core.errors import ThumbnailError
from offload.core.models import ThumbnailStatus
from offload.engines.thumbnail import (
    ExifToolPreviewThumbnailer,
    PillowThumbnailer,
    SipsThumbnailer,
    ThumbnailGenerator,
    platform_utility,
)

from .fixtures import RecordingStrategy, make_file, make_image


class TestPillowThumbnailer:
    """Tests for PillowThumbnailer."""

    def test_cover_fit_square(self, tmp_path):
        """A wide image is cropped to fill the square."""
        source = make_image(tmp_path / "wide.jpg", size=(800, 400))
        target = tmp_path / "thumb.jpg"

        PillowThumbnailer(size=200, quality=80).generate(source, target)

        with Image.open(target) as img:
            assert img.format == "JPEG"
            assert img.size == (200, 200)

    def test_png_source(self, tmp_path):
        source = make_image(tmp_path / "alpha.png", size=(300, 500), fmt="PNG")
        target = tmp_path / "thumb.jpg"

        PillowThumbnailer(size=64).generate(source, target)

        with Image.open(target) as img:
            assert img.size == (64, 64)

    def test_undecodable_raises(self, tmp_path):
        source = make_file(tmp_path / "IMG.CR2", b"not really raw")

        with pytest.raises(ThumbnailError):
            PillowThumbnailer().generate(source, tmp_path / "thumb.jpg")


class TestPlatformUtility:
    """Tests for platform_utility selection."""

    def test_none_available(self):
        with patch("offload.engines.thumbnail.shutil.which", return_value=None):
            assert platform_utility(platform="linux") is None

    def test_sips_on_darwin(self):
        with patch("offload.engines.thumbnail.shutil.which", side_effect=lambda name: f"/usr/bin/{name}"):
            assert isinstance(platform_utility(platform="darwin"), SipsThumbnailer)

    def test_exiftool_elsewhere(self):
        with patch("offload.engines.thumbnail.shutil.which", side_effect=lambda name: f"/usr/bin/{name}"):
            assert isinstance(platform_utility(platform="linux"), ExifToolPreviewThumbnailer)


class TestThumbnailGenerator:
    """Tests for the strategy chain."""

    def test_chain_without_utility(self):
        primary = RecordingStrategy("pillow")
        generator = ThumbnailGenerator(primary)
        assert generator.chain_for(Path("a.cr2")) == [primary]

    def test_chain_for_raw(self):
        """RAW: utility, then pillow, then utility again."""
        primary, utility = RecordingStrategy("pillow"), RecordingStrategy("utility")
        generator = ThumbnailGenerator(primary, utility)
        assert generator.chain_for(Path("a.NEF")) == [utility, primary, utility]

    def test_chain_for_jpeg(self):
        primary, utility = RecordingStrategy("pillow"), RecordingStrategy("utility")
        generator = ThumbnailGenerator(primary, utility)
        assert generator.chain_for(Path("a.jpg")) == [primary, utility]

    def test_first_strategy_succeeds(self, tmp_path):
        primary = RecordingStrategy("pillow")
        target = tmp_path / "thumb.jpg"

        result = ThumbnailGenerator(primary).generate(tmp_path / "a.jpg", target)

        assert result.status == ThumbnailStatus.GENERATED
        assert result.path == target
        assert result.strategy == "pillow"

    def test_fallback_cleans_partial(self, tmp_path):
        """A failed strategy leaves no partial file for the next one."""
        primary = RecordingStrategy("pillow", fail=True)
        utility = RecordingStrategy("utility")
        target = tmp_path / "thumb.jpg"

        result = ThumbnailGenerator(primary, utility).generate(tmp_path / "a.jpg", target)

        assert result.status == ThumbnailStatus.FALLBACK
        assert result.strategy == "utility"
        assert target.read_bytes() == b"\xff\xd8thumbnail"

    def test_raw_retries_utility(self, tmp_path):
        utility = RecordingStrategy("utility", fail=True)
        primary = RecordingStrategy("pillow", fail=True)
        target = tmp_path / "thumb.jpg"

        result = ThumbnailGenerator(primary, utility).generate(tmp_path / "a.arw", target)

        assert result.status == ThumbnailStatus.FAILED
        assert result.path is None
        assert len(utility.calls) == 2
        assert len(primary.calls) == 1
        assert not target.exists()

    def test_video_unsupported(self, tmp_path):
        primary = RecordingStrategy("pillow")

        result = ThumbnailGenerator(primary).generate(tmp_path / "clip.mov", tmp_path / "t.jpg")

        assert result.status == ThumbnailStatus.UNSUPPORTED
        assert primary.calls == []

    def test_real_pillow_chain(self, tmp_path):
        source = make_image(tmp_path / "IMG_0001.JPG", size=(640, 480))
        target = tmp_path / "thumb.jpg"

        result = ThumbnailGenerator(PillowThumbnailer()).generate(source, target)

        assert result.status == ThumbnailStatus.GENERATED
        with Image.open(target) as img:
            assert img.size == (200, 200)
