"""
I/O utilities for the SnapScript pipeline.

Handles:
- Input type detection
- Loading source images from files and folders
- JSON serialization
- Directory management
"""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Union

from ..config import IMAGE_EXTENSIONS
from .images import DecodeError, SourceImage

logger = logging.getLogger(__name__)


# ============================================================================
# File Type Detection
# ============================================================================

def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of input file or directory.

    Args:
        input_path: Path to file or directory

    Returns:
        One of: 'image', 'image_folder', 'unknown'
    """
    input_path = Path(input_path)

    if input_path.is_dir():
        has_images = any(
            f.suffix.lower() in IMAGE_EXTENSIONS
            for f in input_path.iterdir()
        )
        return 'image_folder' if has_images else 'unknown'

    if not input_path.exists():
        return 'unknown'

    if input_path.suffix.lower() in IMAGE_EXTENSIONS:
        return 'image'

    return 'unknown'


# ============================================================================
# Image Loading
# ============================================================================

def list_images_in_folder(folder_path: Union[str, Path]) -> List[Path]:
    """Image files in a folder, sorted by name."""
    folder_path = Path(folder_path)
    if not folder_path.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder_path}")

    return sorted(
        f for f in folder_path.iterdir()
        if f.is_file() and f.suffix.lower() in IMAGE_EXTENSIONS
    )


def load_source_images(paths: Iterable[Union[str, Path]]) -> List[SourceImage]:
    """
    Load source images from files and folders, keeping the given order.

    Folders are expanded in name order. Files that are missing, unsupported
    or unreadable are skipped with a warning.

    Args:
        paths: Image files and/or folders of images

    Returns:
        Loaded source images
    """
    files: List[Path] = []
    for path in paths:
        path = Path(path)
        input_type = detect_input_type(path)
        if input_type == 'image_folder':
            files.extend(list_images_in_folder(path))
        elif input_type == 'image':
            files.append(path)
        else:
            logger.warning(f"Skipping unsupported input: {path}")

    images = []
    for file_path in files:
        try:
            images.append(SourceImage.from_path(file_path))
        except (DecodeError, OSError) as e:
            logger.warning(f"Failed to load {file_path}: {e}")

    logger.info(f"Loaded {len(images)} image(s)")
    return images


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles dataclasses, enums and paths."""

    def default(self, obj):
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, bytes):
            return len(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
