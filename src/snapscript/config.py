"""
Configuration and constants for the SnapScript pipeline.

This module provides:
- Logging format shared by the entry points
- Annotator (transcription model) settings
- Layout and sizing parameters for the assembled document
- Export settings
"""

import os
from dataclasses import dataclass, field
from typing import Optional, List
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("snapscript")


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging for the CLI and the web UI."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class AnnotatorConfig:
    """Transcription model configuration."""
    engine: str = "gemini"  # gemini, sidecar
    model: str = "gemini-2.5-flash"
    temperature: float = 0.1  # Low temperature for deterministic transcription
    timeout: float = 60.0
    api_key: Optional[str] = None
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    # Directory of pre-computed <image stem>.txt files (sidecar engine)
    annotations_dir: Optional[str] = None


@dataclass
class LayoutConfig:
    """Document layout configuration. Sizes are in points."""
    page_width: float = 500.0  # Usable A4 width inside the margins
    page_aspect_ratio: float = 1.414  # A4 height / width
    min_image_size: float = 20.0
    title: str = "Extracted Content"
    header_prefix: str = "Source: "
    header_color: str = "666666"
    header_size: float = 10.0
    body_size: float = 12.0
    missing_image_text: str = "[MISSING IMAGE]"
    missing_image_color: str = "FF0000"


@dataclass
class ExportConfig:
    """Export configuration."""
    output_name: str = "SnapScript_Extracted.docx"
    formats: List[str] = field(default_factory=lambda: ["docx"])
    docx_template: Optional[str] = None
    markdown_images_dir: str = "images"


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    annotator: AnnotatorConfig = field(default_factory=AnnotatorConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    # Gemini credentials; API_KEY is accepted for compatibility
    config.annotator.api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")

    if os.environ.get("SNAPSCRIPT_MODEL"):
        config.annotator.model = os.environ["SNAPSCRIPT_MODEL"]

    if os.environ.get("SNAPSCRIPT_ENGINE"):
        config.annotator.engine = os.environ["SNAPSCRIPT_ENGINE"].lower()

    if os.environ.get("SNAPSCRIPT_ANNOTATIONS_DIR"):
        config.annotator.annotations_dir = os.environ["SNAPSCRIPT_ANNOTATIONS_DIR"]

    if os.environ.get("SNAPSCRIPT_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config


# ============================================================================
# Image Types
# ============================================================================

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.webp', '.gif', '.bmp', '.tiff', '.tif')

MIME_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.webp': 'image/webp',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.tiff': 'image/tiff',
    '.tif': 'image/tiff',
}

DEFAULT_MIME_TYPE = 'image/png'
