"""
Export module for SnapScript.

Provides:
- DOCX export (using python-docx)
- Markdown export (crops written as PNG files next to the .md)
- JSON summary export
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .assembler import Document, ImageRun, Paragraph, ParagraphKind, TextRun

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "SnapScript_Extracted.docx"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# ============================================================================
# DOCX Exporter
# ============================================================================

class DocxExporter:
    """Encode an assembled Document as DOCX using python-docx."""

    def __init__(self, template_path: Optional[str] = None):
        self.template_path = template_path

    def build(self, document: Document) -> Any:
        """
        Build a python-docx document from the paragraph tree.

        Args:
            document: Assembled Document

        Returns:
            docx.document.Document
        """
        try:
            from docx import Document as DocxDocument
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        if self.template_path and Path(self.template_path).exists():
            doc = DocxDocument(self.template_path)
        else:
            doc = DocxDocument()

        for paragraph in document.paragraphs:
            self._add_paragraph(doc, paragraph)

        return doc

    def encode(self, document: Document) -> bytes:
        """Serialize the document to DOCX bytes."""
        doc = self.build(document)
        file_stream = io.BytesIO()
        doc.save(file_stream)
        return file_stream.getvalue()

    def export(self, document: Document, output_path: Union[str, Path]) -> Path:
        """
        Export document to a DOCX file.

        Args:
            document: Assembled Document
            output_path: Output file path

        Returns:
            Path to the generated DOCX file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_path.write_bytes(self.encode(document))
        logger.info(f"Exported DOCX to: {output_path}")

        return output_path

    def _add_paragraph(self, doc: Any, paragraph: Paragraph):
        from docx.enum.text import WD_BREAK
        from docx.shared import Pt

        if paragraph.kind == ParagraphKind.TITLE:
            p = doc.add_heading(paragraph.text, 0)
            p.paragraph_format.space_after = Pt(20)
            return

        if paragraph.kind == ParagraphKind.PAGE_BREAK:
            doc.add_paragraph().add_run().add_break(WD_BREAK.PAGE)
            return

        if paragraph.kind == ParagraphKind.HEADING:
            p = doc.add_heading(level=3)
            p.paragraph_format.space_before = Pt(20)
            p.paragraph_format.space_after = Pt(10)
        else:
            p = doc.add_paragraph()
            p.paragraph_format.space_after = Pt(6)

        for run in paragraph.runs:
            if isinstance(run, ImageRun):
                p.add_run().add_picture(
                    io.BytesIO(run.data),
                    width=Pt(run.width),
                    height=Pt(run.height)
                )
            else:
                self._add_text_run(p, run)

    @staticmethod
    def _add_text_run(p: Any, run: TextRun):
        from docx.shared import Pt, RGBColor

        r = p.add_run(run.text)
        r.bold = run.bold
        r.italic = run.italic
        if run.color:
            r.font.color.rgb = RGBColor.from_string(run.color)
        if run.size:
            r.font.size = Pt(run.size)


# ============================================================================
# Markdown Exporter
# ============================================================================

class MarkdownExporter:
    """Export document to Markdown, writing crops as separate PNG files."""

    def __init__(self, images_dirname: str = "images"):
        self.images_dirname = images_dirname

    def export(self, document: Document, output_path: Union[str, Path]) -> Path:
        """
        Export document to a Markdown file.

        Args:
            document: Assembled Document
            output_path: Output file path; images go to a sibling directory

        Returns:
            Path to the generated Markdown file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        images_dir = output_path.parent / self.images_dirname

        markdown, images = self.render(document)

        if images:
            images_dir.mkdir(parents=True, exist_ok=True)
            for filename, data in images.items():
                (images_dir / filename).write_bytes(data)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(markdown)

        logger.info(f"Exported Markdown to: {output_path} ({len(images)} images)")
        return output_path

    def render(self, document: Document):
        """
        Render the document as Markdown text.

        Returns:
            (markdown, {image filename: PNG bytes})
        """
        lines: List[str] = []
        images: Dict[str, bytes] = {}

        for paragraph in document.paragraphs:
            if paragraph.kind == ParagraphKind.TITLE:
                lines.append(f"# {paragraph.text}")
            elif paragraph.kind == ParagraphKind.HEADING:
                lines.append(f"### {paragraph.text}")
            elif paragraph.kind == ParagraphKind.PAGE_BREAK:
                lines.append("---")
            else:
                parts = []
                for run in paragraph.runs:
                    if isinstance(run, ImageRun):
                        filename = f"crop_{len(images) + 1:03d}.png"
                        images[filename] = run.data
                        parts.append(f"![crop {len(images)}]({self.images_dirname}/{filename})")
                    else:
                        parts.append(self._format_text(run))
                lines.append("".join(parts))
            lines.append("")

        return "\n".join(lines), images

    @staticmethod
    def _format_text(run: TextRun) -> str:
        text = run.text
        if not text.strip():
            return text
        if run.bold:
            text = f"**{text}**"
        if run.italic:
            text = f"*{text}*"
        return text


# ============================================================================
# Combined Exporter
# ============================================================================

class DocumentExporter:
    """Convenience class for exporting to multiple formats."""

    FORMATS = ["docx", "markdown", "json"]

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: str = Path(DEFAULT_OUTPUT_NAME).stem,
        docx_template: Optional[str] = None,
        markdown_images_dir: str = "images"
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name

        self.docx_exporter = DocxExporter(template_path=docx_template)
        self.markdown_exporter = MarkdownExporter(images_dirname=markdown_images_dir)

    def export(self, document: Document, formats: Optional[List[str]] = None) -> Dict[str, Path]:
        """
        Export document to multiple formats.

        Args:
            document: Assembled Document
            formats: Subset of 'docx', 'markdown', 'json', or 'all'

        Returns:
            Dictionary mapping format to output path
        """
        from .io import save_json

        if formats is None:
            formats = ["docx"]

        if "all" in formats:
            formats = list(self.FORMATS)

        self.output_dir.mkdir(parents=True, exist_ok=True)

        results = {}

        if "docx" in formats:
            path = self.output_dir / f"{self.base_name}.docx"
            results["docx"] = self.docx_exporter.export(document, path)

        if "markdown" in formats:
            path = self.output_dir / f"{self.base_name}.md"
            results["markdown"] = self.markdown_exporter.export(document, path)

        if "json" in formats:
            path = self.output_dir / f"{self.base_name}.json"
            results["json"] = save_json(document.to_dict(), path)

        return results
