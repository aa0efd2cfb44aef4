"""
Source images and region cropping.

Provides:
- SourceImage: an uploaded page image with its intrinsic size
- crop_region: extract a normalized box from a source image as PNG
- Crop error types
"""

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..config import MIME_TYPES, DEFAULT_MIME_TYPE
from .geometry import NormalizedBox

logger = logging.getLogger(__name__)

# Modes PNG can store without conversion
_PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


# ============================================================================
# Errors
# ============================================================================

class CropError(Exception):
    """A single crop marker could not be turned into an image."""


class DegenerateRegionError(CropError):
    """The crop rectangle has zero or negative extent."""


class DecodeError(CropError):
    """The source image could not be decoded or the crop could not be encoded."""


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class SourceImage:
    """An uploaded page image. Read-only once created."""
    name: str
    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE
    width: int = 0
    height: int = 0

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        name: str,
        mime_type: Optional[str] = None
    ) -> 'SourceImage':
        """
        Create a source image, probing its pixel size.

        Args:
            data: Encoded image bytes
            name: Display name (usually the file name)
            mime_type: MIME type; guessed from the image format or name if omitted

        Raises:
            DecodeError: If the bytes are not a readable image
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                width, height = img.size
                image_format = img.format
        except (UnidentifiedImageError, OSError) as e:
            raise DecodeError(f"Could not decode image {name}: {e}") from e

        if mime_type is None:
            mime_type = Image.MIME.get(image_format or "") or _guess_mime_type(name)

        return cls(name=name, data=data, mime_type=mime_type, width=width, height=height)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'SourceImage':
        """Load a source image from disk."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")
        return cls.from_bytes(path.read_bytes(), name=path.name)


@dataclass(frozen=True)
class CroppedRegion:
    """An encoded crop and its pixel extent."""
    data: bytes
    width: int
    height: int
    mime_type: str = "image/png"


def _guess_mime_type(name: str) -> str:
    suffix = Path(name).suffix.lower()
    if suffix in MIME_TYPES:
        return MIME_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(name)
    return guessed or DEFAULT_MIME_TYPE


# ============================================================================
# Cropping
# ============================================================================

def crop_region(image: SourceImage, box: NormalizedBox) -> CroppedRegion:
    """
    Crop a normalized box out of a source image.

    The rectangle is taken as-is: no clamping to the image bounds and no
    scaling. Parts outside the image come out as zero pixels.

    Args:
        image: Source image
        box: Box on the 0-1000 scale

    Returns:
        PNG-encoded crop

    Raises:
        DegenerateRegionError: If the box has no positive extent
        DecodeError: If the source image cannot be rasterized
    """
    if box.is_degenerate:
        raise DegenerateRegionError(f"Invalid crop dimensions: {box.to_tuple()}")

    try:
        with Image.open(io.BytesIO(image.data)) as img:
            img.load()
            rect = box.to_pixel_rect(*img.size)

            if rect.width <= 0 or rect.height <= 0:
                raise DegenerateRegionError(
                    f"Crop {box.to_tuple()} is empty on a {img.width}x{img.height} image"
                )

            region = img.crop(rect.to_crop_box())
            try:
                if region.mode not in _PNG_MODES:
                    converted = region.convert("RGBA" if "A" in region.getbands() else "RGB")
                    region.close()
                    region = converted

                buffer = io.BytesIO()
                region.save(buffer, format="PNG")
            finally:
                region.close()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to load {image.name} for cropping: {e}") from e

    logger.debug(f"Cropped {box.to_tuple()} from {image.name}: {rect.width}x{rect.height}px")
    return CroppedRegion(data=buffer.getvalue(), width=rect.width, height=rect.height)
