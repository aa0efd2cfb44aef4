"""
SnapScript
==========

Compiles transcribed document images into a single Word document.

An external vision model transcribes each page and replaces formulas,
diagrams and charts with inline ``[[CROP:ymin,xmin,ymax,xmax]]`` markers.
This package turns that annotated text back into a document, cropping
each marked region out of the source image and embedding it in place.

Main components:
- Marker parsing (annotated text -> text / crop segments)
- Region cropping (normalized boxes -> PNG crops)
- Layout assembly (segments -> paragraphs and runs)
- Export (DOCX, Markdown, JSON)
"""

__version__ = "1.0.0"
__author__ = "SnapScript Team"
