"""
Tests for geometry helpers and region cropping.
"""

import io
import pytest
import numpy as np
import sys
from pathlib import Path

from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def encode_png(array: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format="PNG")
    return buffer.getvalue()


class TestGeometry:
    """Test normalized box conversions."""

    def test_box_extent(self):
        from snapscript.utils.geometry import NormalizedBox

        box = NormalizedBox(ymin=100, xmin=200, ymax=400, xmax=700)

        assert box.width == 500
        assert box.height == 300
        assert not box.is_degenerate

    @pytest.mark.parametrize("coords", [
        (100, 100, 100, 200),
        (100, 100, 200, 100),
        (300, 100, 200, 200),
        (100, 300, 200, 200),
    ])
    def test_degenerate_boxes(self, coords):
        from snapscript.utils.geometry import NormalizedBox

        assert NormalizedBox(*coords).is_degenerate

    def test_to_pixel_rect(self):
        from snapscript.utils.geometry import NormalizedBox

        rect = NormalizedBox(ymin=200, xmin=250, ymax=400, xmax=500).to_pixel_rect(200, 100)

        assert (rect.x, rect.y, rect.width, rect.height) == (50, 20, 50, 20)
        assert rect.to_crop_box() == (50, 20, 100, 40)
        assert rect.area == 1000

    def test_display_size_proportional(self):
        from snapscript.utils.geometry import NormalizedBox, display_size

        width, height = display_size(
            NormalizedBox(0, 0, 500, 500), page_width=500, aspect_ratio=1.414, min_size=20
        )

        assert width == pytest.approx(250.0)
        assert height == pytest.approx(353.5)

    def test_display_size_minimum(self):
        """Tiny crops are floored at the minimum visible size."""
        from snapscript.utils.geometry import NormalizedBox, display_size

        width, height = display_size(
            NormalizedBox(999, 999, 1000, 1000), page_width=500, aspect_ratio=1.414, min_size=20
        )

        assert width == 20
        assert height == 20


class TestSourceImage:
    """Test source image construction."""

    def test_from_bytes_reads_size(self):
        from snapscript.utils.images import SourceImage

        data = encode_png(np.full((120, 80, 3), 255, dtype=np.uint8))
        image = SourceImage.from_bytes(data, name="page.png")

        assert image.width == 80
        assert image.height == 120
        assert image.mime_type == "image/png"

    def test_from_bytes_jpeg_mime(self):
        from snapscript.utils.images import SourceImage

        buffer = io.BytesIO()
        Image.new("RGB", (10, 10), "white").save(buffer, format="JPEG")
        image = SourceImage.from_bytes(buffer.getvalue(), name="photo")

        assert image.mime_type == "image/jpeg"

    def test_from_bytes_invalid(self):
        from snapscript.utils.images import SourceImage, DecodeError

        with pytest.raises(DecodeError):
            SourceImage.from_bytes(b"definitely not an image", name="broken.png")

    def test_from_path(self, tmp_path):
        from snapscript.utils.images import SourceImage

        path = tmp_path / "scan.png"
        path.write_bytes(encode_png(np.zeros((30, 40), dtype=np.uint8)))

        image = SourceImage.from_path(path)

        assert image.name == "scan.png"
        assert (image.width, image.height) == (40, 30)

    def test_from_path_missing(self, tmp_path):
        from snapscript.utils.images import SourceImage

        with pytest.raises(FileNotFoundError):
            SourceImage.from_path(tmp_path / "missing.png")


class TestCropRegion:
    """Test cropping normalized boxes out of source images."""

    @pytest.fixture
    def page_image(self):
        """A 200x100 white page with a black block at x 50-100, y 20-40."""
        from snapscript.utils.images import SourceImage

        img = np.full((100, 200, 3), 255, dtype=np.uint8)
        img[20:40, 50:100] = 0
        return SourceImage.from_bytes(encode_png(img), name="page.png")

    def test_crop_exact_region(self, page_image):
        from snapscript.utils.images import crop_region
        from snapscript.utils.geometry import NormalizedBox

        region = crop_region(page_image, NormalizedBox(ymin=200, xmin=250, ymax=400, xmax=500))

        assert (region.width, region.height) == (50, 20)
        assert region.mime_type == "image/png"

        with Image.open(io.BytesIO(region.data)) as cropped:
            assert cropped.format == "PNG"
            assert cropped.size == (50, 20)
            pixels = np.asarray(cropped)
        assert pixels.max() == 0

    @pytest.mark.parametrize("size,coords", [
        ((333, 777), (100, 100, 550, 900)),
        ((1000, 1000), (0, 0, 1000, 1000)),
        ((1000, 1000), (999, 999, 1000, 1000)),
        ((640, 480), (0, 0, 3, 3)),
        ((57, 91), (13, 250, 987, 751)),
    ])
    def test_crop_extent_matches_rounding(self, size, coords):
        from snapscript.utils.images import SourceImage, crop_region
        from snapscript.utils.geometry import NormalizedBox

        width, height = size
        image = SourceImage.from_bytes(
            encode_png(np.full((height, width), 128, dtype=np.uint8)), name="grey.png"
        )
        box = NormalizedBox(*coords)

        region = crop_region(image, box)

        assert region.width == round(box.width / 1000 * width)
        assert region.height == round(box.height / 1000 * height)
        with Image.open(io.BytesIO(region.data)) as cropped:
            assert cropped.size == (region.width, region.height)

    @pytest.mark.parametrize("coords", [
        (200, 500, 400, 500),
        (400, 250, 200, 500),
        (200, 600, 400, 100),
    ])
    def test_degenerate_region(self, page_image, coords):
        from snapscript.utils.images import crop_region, DegenerateRegionError
        from snapscript.utils.geometry import NormalizedBox

        with pytest.raises(DegenerateRegionError):
            crop_region(page_image, NormalizedBox(*coords))

    def test_degenerate_checked_before_decode(self):
        """Reversed boxes fail as degenerate even for unreadable images."""
        from snapscript.utils.images import SourceImage, crop_region, DegenerateRegionError
        from snapscript.utils.geometry import NormalizedBox

        image = SourceImage(name="broken.png", data=b"garbage")

        with pytest.raises(DegenerateRegionError):
            crop_region(image, NormalizedBox(500, 500, 100, 100))

    def test_rounds_to_empty_is_degenerate(self):
        """A valid box smaller than one pixel is still degenerate."""
        from snapscript.utils.images import SourceImage, crop_region, DegenerateRegionError
        from snapscript.utils.geometry import NormalizedBox

        image = SourceImage.from_bytes(encode_png(np.zeros((10, 10), dtype=np.uint8)), name="tiny.png")

        with pytest.raises(DegenerateRegionError):
            crop_region(image, NormalizedBox(0, 0, 1, 1))

    def test_decode_error(self):
        from snapscript.utils.images import SourceImage, crop_region, DecodeError, CropError
        from snapscript.utils.geometry import NormalizedBox

        image = SourceImage(name="broken.png", data=b"not an image at all")

        with pytest.raises(DecodeError) as exc_info:
            crop_region(image, NormalizedBox(0, 0, 500, 500))
        assert isinstance(exc_info.value, CropError)

    def test_out_of_bounds_not_clamped(self, page_image):
        """Boxes beyond 1000 keep their full extent."""
        from snapscript.utils.images import crop_region
        from snapscript.utils.geometry import NormalizedBox

        region = crop_region(page_image, NormalizedBox(0, 500, 1000, 1200))

        assert (region.width, region.height) == (140, 100)

    def test_cmyk_source_is_converted(self):
        from snapscript.utils.images import SourceImage, crop_region
        from snapscript.utils.geometry import NormalizedBox

        buffer = io.BytesIO()
        Image.new("CMYK", (40, 40), (0, 0, 0, 0)).save(buffer, format="JPEG")
        image = SourceImage.from_bytes(buffer.getvalue(), name="print.jpg")

        region = crop_region(image, NormalizedBox(0, 0, 500, 500))

        with Image.open(io.BytesIO(region.data)) as cropped:
            assert cropped.mode == "RGB"
            assert cropped.size == (20, 20)

    def test_intermediate_images_are_closed(self, monkeypatch):
        """Both the crop and its RGB conversion are closed after encoding."""
        from snapscript.utils.images import SourceImage, crop_region
        from snapscript.utils.geometry import NormalizedBox

        buffer = io.BytesIO()
        Image.new("CMYK", (40, 40), (0, 0, 0, 0)).save(buffer, format="JPEG")
        image = SourceImage.from_bytes(buffer.getvalue(), name="print.jpg")

        closed = []
        original_close = Image.Image.close

        def recording_close(self):
            closed.append((self.mode, self.size))
            original_close(self)

        monkeypatch.setattr(Image.Image, "close", recording_close)

        crop_region(image, NormalizedBox(0, 0, 500, 500))

        assert ("CMYK", (20, 20)) in closed
        assert ("RGB", (20, 20)) in closed
