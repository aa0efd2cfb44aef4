"""
Ordered upload queue with per-file processing status.

The queue is the only writer of file status. Annotation runs strictly one
file at a time in the user-visible order, and status changes are reported
before and after each annotation call so a UI can show progress per file.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from .annotator import AnnotationError, Annotator
from .assembler import AnnotatedFile
from .images import SourceImage

logger = logging.getLogger(__name__)


class ProcessingStatus(Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass
class UploadedFile:
    """An uploaded image and its annotation state."""
    image: SourceImage
    file_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: ProcessingStatus = ProcessingStatus.IDLE
    extracted_text: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def name(self) -> str:
        return self.image.name

    @property
    def has_text(self) -> bool:
        return bool(self.extracted_text)


class FileQueue:
    """Ordered collection of uploaded files."""

    def __init__(self, images: Iterable[SourceImage] = ()):
        self.files: List[UploadedFile] = []
        self.add_many(images)

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)

    def add(self, image: SourceImage) -> UploadedFile:
        uploaded = UploadedFile(image=image)
        self.files.append(uploaded)
        return uploaded

    def add_many(self, images: Iterable[SourceImage]) -> List[UploadedFile]:
        return [self.add(image) for image in images]

    def get(self, file_id: str) -> Optional[UploadedFile]:
        for uploaded in self.files:
            if uploaded.file_id == file_id:
                return uploaded
        return None

    def remove(self, file_id: str) -> bool:
        uploaded = self.get(file_id)
        if uploaded is None:
            return False
        self.files.remove(uploaded)
        return True

    def clear(self) -> None:
        self.files = []

    def move(self, index: int, direction: str) -> bool:
        """
        Swap a file with its neighbour.

        Args:
            index: Position of the file
            direction: "up" (towards the start) or "down"

        Returns:
            True if the order changed; moves past either end are ignored
        """
        if direction == "up":
            target = index - 1
        elif direction == "down":
            target = index + 1
        else:
            raise ValueError(f"Unknown direction: {direction}")

        if not (0 <= index < len(self.files) and 0 <= target < len(self.files)):
            return False

        self.files[index], self.files[target] = self.files[target], self.files[index]
        return True

    @property
    def completed_count(self) -> int:
        return sum(1 for f in self.files if f.status == ProcessingStatus.COMPLETED)

    def status_table(self) -> Dict[str, ProcessingStatus]:
        return {f.file_id: f.status for f in self.files}

    def process_pending(
        self,
        annotator: Annotator,
        on_update: Optional[Callable[[UploadedFile], None]] = None
    ) -> List[UploadedFile]:
        """
        Annotate every file that is not yet completed, one at a time.

        A failed file is marked ERROR and processing moves on.

        Args:
            annotator: Transcription engine
            on_update: Called with the file after each status change

        Returns:
            Files that were processed in this call
        """
        pending = [f for f in self.files if f.status != ProcessingStatus.COMPLETED]
        logger.info(f"Processing {len(pending)} of {len(self.files)} file(s)")

        for position, uploaded in enumerate(pending, start=1):
            uploaded.status = ProcessingStatus.PROCESSING
            uploaded.error_message = None
            logger.info(f"[{position}/{len(pending)}] Transcribing {uploaded.name}")
            if on_update:
                on_update(uploaded)

            try:
                text = annotator.annotate(
                    uploaded.image.data,
                    uploaded.image.mime_type,
                    name=uploaded.name
                )
            except AnnotationError as e:
                uploaded.status = ProcessingStatus.ERROR
                uploaded.error_message = str(e)
                logger.error(f"Transcription failed for {uploaded.name}: {e}")
            else:
                uploaded.status = ProcessingStatus.COMPLETED
                uploaded.extracted_text = text
                logger.info(f"[{position}/{len(pending)}] {uploaded.name} done")

            if on_update:
                on_update(uploaded)

        return pending

    def eligible_files(self) -> List[AnnotatedFile]:
        """Completed files with text, in current order, ready for assembly."""
        return [
            AnnotatedFile(name=f.name, image=f.image, annotated_text=f.extracted_text)
            for f in self.files
            if f.status == ProcessingStatus.COMPLETED and f.has_text
        ]
