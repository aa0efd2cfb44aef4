"""
Marker parsing for annotated transcriptions.

The annotator returns plain text with inline crop markers of the form
``[[CROP:ymin,xmin,ymax,xmax]]`` wherever it declined to transcribe a
region. This module splits such text into an ordered list of segments.

Parsing never fails. Anything that is not a well-formed marker stays
literal text. Line breaks are kept verbatim; paragraph splitting is done
by the layout assembler.

Any substring matching the marker pattern is treated as a marker, even if
the model produced it by coincidence. There is no escaping mechanism.
"""

import re
from dataclasses import dataclass
from typing import List, Union

from .geometry import NormalizedBox

MARKER_PATTERN = re.compile(r"\[\[CROP:([0-9]+),([0-9]+),([0-9]+),([0-9]+)\]\]")


@dataclass(frozen=True)
class TextSegment:
    """Literal transcribed text, possibly containing line breaks."""
    content: str


@dataclass(frozen=True)
class CropSegment:
    """A region to crop from the source image instead of transcribing."""
    box: NormalizedBox
    raw: str  # exact marker text as it appeared in the input


Segment = Union[TextSegment, CropSegment]


def parse_annotated_text(text: str) -> List[Segment]:
    """
    Split annotated text into text and crop segments, in order of appearance.

    Args:
        text: Annotated transcription

    Returns:
        List of segments. Empty text segments are never emitted, so an
        empty input yields an empty list.
    """
    segments: List[Segment] = []
    position = 0

    for match in MARKER_PATTERN.finditer(text):
        if match.start() > position:
            segments.append(TextSegment(text[position:match.start()]))

        ymin, xmin, ymax, xmax = (int(group) for group in match.groups())
        segments.append(CropSegment(
            box=NormalizedBox(ymin=ymin, xmin=xmin, ymax=ymax, xmax=xmax),
            raw=match.group(0),
        ))
        position = match.end()

    if position < len(text):
        segments.append(TextSegment(text[position:]))

    return segments


def segments_to_text(segments: List[Segment]) -> str:
    """Rebuild the annotated text from its segments."""
    return "".join(
        segment.raw if isinstance(segment, CropSegment) else segment.content
        for segment in segments
    )


def count_markers(text: str) -> int:
    """Number of well-formed crop markers in ``text``."""
    return sum(1 for _ in MARKER_PATTERN.finditer(text))
