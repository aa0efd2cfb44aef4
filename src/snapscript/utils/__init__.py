"""
Utility modules for the SnapScript pipeline.
"""

from .geometry import NormalizedBox, PixelRect, display_size
from .markers import TextSegment, CropSegment, parse_annotated_text, segments_to_text
from .images import (
    SourceImage, CroppedRegion, crop_region,
    CropError, DegenerateRegionError, DecodeError,
)
from .annotator import Annotator, GeminiAnnotator, SidecarAnnotator, AnnotationError, get_annotator
from .assembler import (
    LayoutAssembler, AnnotatedFile, Document, Paragraph, ParagraphKind,
    TextRun, ImageRun, NoContentError,
)
from .session import FileQueue, UploadedFile, ProcessingStatus
from .export import DocxExporter, MarkdownExporter, DocumentExporter, DEFAULT_OUTPUT_NAME
from .io import load_source_images, detect_input_type, save_json, ensure_dir

__all__ = [
    # Geometry
    "NormalizedBox", "PixelRect", "display_size",
    # Markers
    "TextSegment", "CropSegment", "parse_annotated_text", "segments_to_text",
    # Images
    "SourceImage", "CroppedRegion", "crop_region",
    "CropError", "DegenerateRegionError", "DecodeError",
    # Annotation
    "Annotator", "GeminiAnnotator", "SidecarAnnotator", "AnnotationError", "get_annotator",
    # Assembly
    "LayoutAssembler", "AnnotatedFile", "Document", "Paragraph", "ParagraphKind",
    "TextRun", "ImageRun", "NoContentError",
    # Session
    "FileQueue", "UploadedFile", "ProcessingStatus",
    # Export
    "DocxExporter", "MarkdownExporter", "DocumentExporter", "DEFAULT_OUTPUT_NAME",
    # IO
    "load_source_images", "detect_input_type", "save_json", "ensure_dir",
]
