"""
Document assembler for SnapScript.

Provides:
- Document data model (Document, Paragraph, TextRun, ImageRun)
- LayoutAssembler: annotated files -> Document

The document is rebuilt from scratch for every download. It is a plain
tree of paragraphs and runs; encoding it to DOCX or Markdown is done in
the export module.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..config import LayoutConfig
from .geometry import NormalizedBox, display_size
from .images import CropError, CroppedRegion, SourceImage, crop_region
from .markers import CropSegment, TextSegment, parse_annotated_text

logger = logging.getLogger(__name__)


class NoContentError(ValueError):
    """Assembly was requested with no files that have extracted text."""

    def __init__(self, message: str = "No text available to download."):
        super().__init__(message)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class TextRun:
    """A styled fragment of text. ``size`` is in points."""
    text: str
    bold: bool = False
    italic: bool = False
    color: Optional[str] = None
    size: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "text",
            "text": self.text,
            "bold": self.bold,
            "italic": self.italic,
            "color": self.color,
            "size": self.size,
        }


@dataclass
class ImageRun:
    """An embedded image. ``width`` and ``height`` are in points."""
    data: bytes
    width: float
    height: float
    mime_type: str = "image/png"
    pixel_width: int = 0
    pixel_height: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "image",
            "mime_type": self.mime_type,
            "width": round(self.width, 2),
            "height": round(self.height, 2),
            "pixel_width": self.pixel_width,
            "pixel_height": self.pixel_height,
            "bytes": len(self.data),
        }


Run = Union[TextRun, ImageRun]


class ParagraphKind(Enum):
    """Paragraph roles in the assembled document."""
    TITLE = "title"
    HEADING = "heading"
    BODY = "body"
    PAGE_BREAK = "page_break"


@dataclass
class Paragraph:
    """An ordered sequence of runs rendered as one block."""
    runs: List[Run] = field(default_factory=list)
    kind: ParagraphKind = ParagraphKind.BODY

    @property
    def text_runs(self) -> List[TextRun]:
        return [r for r in self.runs if isinstance(r, TextRun)]

    @property
    def image_runs(self) -> List[ImageRun]:
        return [r for r in self.runs if isinstance(r, ImageRun)]

    @property
    def text(self) -> str:
        return "".join(r.text for r in self.text_runs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "runs": [r.to_dict() for r in self.runs],
        }


@dataclass
class Document:
    """Complete assembled document."""
    paragraphs: List[Paragraph] = field(default_factory=list)
    title: str = ""
    source_files: List[str] = field(default_factory=list)
    # Informational only; two assemblies of the same input compare equal
    created_at: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    @property
    def headings(self) -> List[Paragraph]:
        return [p for p in self.paragraphs if p.kind == ParagraphKind.HEADING]

    @property
    def page_breaks(self) -> List[Paragraph]:
        return [p for p in self.paragraphs if p.kind == ParagraphKind.PAGE_BREAK]

    @property
    def body(self) -> List[Paragraph]:
        return [p for p in self.paragraphs if p.kind == ParagraphKind.BODY]

    @property
    def image_runs(self) -> List[ImageRun]:
        return [r for p in self.paragraphs for r in p.image_runs]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "created_at": self.created_at,
            "source_files": list(self.source_files),
            "paragraphs": [p.to_dict() for p in self.paragraphs],
            "stats": {
                "paragraphs": len(self.paragraphs),
                "headings": len(self.headings),
                "images": len(self.image_runs),
                "page_breaks": len(self.page_breaks),
            },
        }


@dataclass(frozen=True)
class AnnotatedFile:
    """A source image paired with its annotated transcription."""
    name: str
    image: SourceImage
    annotated_text: str


# ============================================================================
# Layout Assembler
# ============================================================================

class LayoutAssembler:
    """
    Builds a Document from annotated files.

    For each file, in order:
    - a heading paragraph naming the file
    - body paragraphs; line breaks in the text end paragraphs, crop markers
      become inline images in the current paragraph
    - a page break before the next file

    A crop that fails becomes a visible "[MISSING IMAGE]" run; it never
    aborts the file or the document.
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        cropper: Callable[[SourceImage, NormalizedBox], CroppedRegion] = crop_region
    ):
        self.config = config or LayoutConfig()
        self.cropper = cropper

    def assemble(
        self,
        files: Sequence[AnnotatedFile],
        on_progress: Optional[Callable[[int, int, str], None]] = None
    ) -> Document:
        """
        Assemble all files into one document.

        Args:
            files: Files with non-empty annotated text, in output order
            on_progress: Called as (index, total, name) before each file

        Returns:
            Assembled Document

        Raises:
            NoContentError: If ``files`` is empty
        """
        if not files:
            raise NoContentError()

        document = Document(
            title=self.config.title,
            source_files=[f.name for f in files],
        )
        document.paragraphs.append(
            Paragraph([TextRun(self.config.title)], kind=ParagraphKind.TITLE)
        )

        total = len(files)
        for index, annotated in enumerate(files):
            if on_progress:
                on_progress(index, total, annotated.name)

            logger.info(f"Assembling {annotated.name} ({index + 1}/{total})")
            document.paragraphs.append(self._header(annotated.name))
            document.paragraphs.extend(self.build_body(annotated))

            if index < total - 1:
                document.paragraphs.append(Paragraph(kind=ParagraphKind.PAGE_BREAK))

        logger.info(
            f"Assembled {len(document.paragraphs)} paragraphs, "
            f"{len(document.image_runs)} images from {total} file(s)"
        )
        return document

    def build_body(self, annotated: AnnotatedFile) -> List[Paragraph]:
        """Convert one file's annotated text into body paragraphs."""
        paragraphs: List[Paragraph] = []
        current: List[Run] = []

        def flush():
            nonlocal current
            if current:
                paragraphs.append(Paragraph(current))
                current = []

        for segment in parse_annotated_text(annotated.annotated_text):
            if isinstance(segment, CropSegment):
                current.append(self._crop_run(annotated.image, segment))
                continue

            lines = segment.content.replace("\r\n", "\n").split("\n")
            for line_index, line in enumerate(lines):
                if line:
                    current.append(TextRun(line, size=self.config.body_size))
                # Every line break ends the paragraph; the text after the
                # last break stays open for following runs
                if line_index < len(lines) - 1:
                    flush()

        flush()
        return paragraphs

    def image_display_size(self, box: NormalizedBox):
        return display_size(
            box,
            page_width=self.config.page_width,
            aspect_ratio=self.config.page_aspect_ratio,
            min_size=self.config.min_image_size,
        )

    def _crop_run(self, image: SourceImage, segment: CropSegment) -> Run:
        try:
            region = self.cropper(image, segment.box)
        except CropError as e:
            logger.warning(f"Failed to crop {segment.raw} from {image.name}: {e}")
            return TextRun(
                self.config.missing_image_text,
                bold=True,
                color=self.config.missing_image_color,
            )

        width, height = self.image_display_size(segment.box)
        return ImageRun(
            data=region.data,
            width=width,
            height=height,
            mime_type=region.mime_type,
            pixel_width=region.width,
            pixel_height=region.height,
        )

    def _header(self, name: str) -> Paragraph:
        return Paragraph(
            [TextRun(
                f"{self.config.header_prefix}{name}",
                bold=True,
                italic=True,
                color=self.config.header_color,
                size=self.config.header_size,
            )],
            kind=ParagraphKind.HEADING,
        )
