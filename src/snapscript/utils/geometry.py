"""
Coordinate helpers shared by the cropper and the layout assembler.

Markers carry boxes on a 0-1000 normalized scale in (row, column) order.
These helpers map them to pixel rectangles on the source image and to
display sizes on the output page.
"""

from dataclasses import dataclass
from typing import Tuple

NORMALIZED_SCALE = 1000


@dataclass(frozen=True)
class PixelRect:
    """Pixel-space rectangle on a source image."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_crop_box(self) -> Tuple[int, int, int, int]:
        """Return (left, top, right, bottom) as expected by PIL."""
        return (self.x, self.y, self.right, self.bottom)


@dataclass(frozen=True)
class NormalizedBox:
    """Bounding box on the 0-1000 scale, in the annotator's (y, x) order."""
    ymin: int
    xmin: int
    ymax: int
    xmax: int

    @property
    def width(self) -> int:
        return self.xmax - self.xmin

    @property
    def height(self) -> int:
        return self.ymax - self.ymin

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_tuple(self) -> Tuple[int, int, int, int]:
        return (self.ymin, self.xmin, self.ymax, self.xmax)

    def to_pixel_rect(self, image_width: int, image_height: int) -> PixelRect:
        """
        Map the box onto an image of the given size.

        Origin and extent are rounded independently, so the extent always
        equals round(width / 1000 * W) x round(height / 1000 * H).
        """
        return PixelRect(
            x=round(self.xmin / NORMALIZED_SCALE * image_width),
            y=round(self.ymin / NORMALIZED_SCALE * image_height),
            width=round(self.width / NORMALIZED_SCALE * image_width),
            height=round(self.height / NORMALIZED_SCALE * image_height),
        )


def display_size(
    box: NormalizedBox,
    page_width: float,
    aspect_ratio: float,
    min_size: float
) -> Tuple[float, float]:
    """
    Size of an embedded crop on the page, proportional to its normalized extent.

    Small crops (inline formulas) stay small and large crops (full-width
    diagrams) stay large. Both sides are floored at ``min_size``.

    Args:
        box: Normalized crop box
        page_width: Usable page width in page units
        aspect_ratio: Page height / width
        min_size: Minimum side length in page units

    Returns:
        (width, height) in page units
    """
    width = box.width / NORMALIZED_SCALE * page_width
    height = box.height / NORMALIZED_SCALE * page_width * aspect_ratio
    return max(min_size, width), max(min_size, height)
