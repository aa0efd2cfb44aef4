"""
End-to-end tests for the SnapScript command-line pipeline.
"""

import io
import json
import logging
import pytest
import numpy as np
import sys
from pathlib import Path

from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestEndToEnd:
    """Run the CLI against synthetic pages and saved annotations."""

    @pytest.fixture
    def pages_dir(self, tmp_path):
        """Three page images; a dark 'diagram' sits in the middle of each."""
        pages = tmp_path / "pages"
        pages.mkdir()
        for i, name in enumerate(["page1.png", "page2.png", "page3.png"]):
            img = np.full((800, 600, 3), 255, dtype=np.uint8)
            img[200:400, 150:450] = 40 * i
            Image.fromarray(img).save(pages / name)
        (pages / "notes.txt").write_text("not an image", encoding="utf-8")
        return pages

    @pytest.fixture
    def annotations_dir(self, tmp_path):
        """Annotations for pages 1 and 2 only; page 3 will fail."""
        annotations = tmp_path / "annotations"
        annotations.mkdir()
        (annotations / "page1.txt").write_text(
            "Chapter 1\nThe structure [[CROP:250,250,500,750]] is shown.\n",
            encoding="utf-8"
        )
        (annotations / "page2.txt").write_text(
            "Results\n[[CROP:900,900,100,100]]\nEnd of page.",
            encoding="utf-8"
        )
        return annotations

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for var in ["GEMINI_API_KEY", "API_KEY", "SNAPSCRIPT_ENGINE",
                    "SNAPSCRIPT_ANNOTATIONS_DIR", "SNAPSCRIPT_MODEL", "SNAPSCRIPT_DEBUG"]:
            monkeypatch.delenv(var, raising=False)
        root = logging.getLogger()
        level = root.level
        yield
        root.setLevel(level)

    def run_cli(self, argv):
        from snapscript.cli import main

        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        return exc_info.value.code

    def test_full_pipeline(self, pages_dir, annotations_dir, tmp_path):
        from docx import Document as DocxDocument

        output_dir = tmp_path / "out"
        code = self.run_cli([
            "--input", str(pages_dir),
            "--output", str(output_dir),
            "--annotations", str(annotations_dir),
            "--format", "all",
            "--quiet",
        ])

        assert code == 0

        docx_path = output_dir / "SnapScript_Extracted.docx"
        assert docx_path.exists()
        assert (output_dir / "SnapScript_Extracted.md").exists()
        assert (output_dir / "images" / "crop_001.png").exists()

        doc = DocxDocument(str(docx_path))
        texts = [p.text for p in doc.paragraphs]

        assert texts[0] == "Extracted Content"
        assert "Source: page1.png" in texts
        assert "Source: page2.png" in texts
        assert "Source: page3.png" not in texts
        assert "Chapter 1" in texts
        assert "The structure  is shown." in texts
        assert "[MISSING IMAGE]" in texts
        assert len(doc.inline_shapes) == 1

        summary = json.loads((output_dir / "SnapScript_Extracted.json").read_text(encoding="utf-8"))
        assert summary["source_files"] == ["page1.png", "page2.png"]
        assert summary["stats"]["page_breaks"] == 1

    def test_crop_content_matches_source(self, pages_dir, annotations_dir, tmp_path):
        output_dir = tmp_path / "out"
        self.run_cli([
            "--input", str(pages_dir / "page1.png"), str(pages_dir / "page2.png"),
            "--output", str(output_dir),
            "--annotations", str(annotations_dir),
            "--format", "markdown",
            "--quiet",
        ])

        with Image.open(output_dir / "images" / "crop_001.png") as crop:
            assert crop.size == (300, 200)
            pixels = np.asarray(crop)
        assert pixels.max() == 0

    def test_input_order_is_respected(self, pages_dir, annotations_dir, tmp_path):
        output_dir = tmp_path / "out"
        self.run_cli([
            "--input", str(pages_dir / "page2.png"), str(pages_dir / "page1.png"),
            "--output", str(output_dir),
            "--annotations", str(annotations_dir),
            "--format", "json",
            "--output-name", "ordered.docx",
            "--quiet",
        ])

        summary = json.loads((output_dir / "ordered.json").read_text(encoding="utf-8"))
        assert summary["source_files"] == ["page2.png", "page1.png"]

    def test_no_eligible_files(self, pages_dir, tmp_path):
        empty_annotations = tmp_path / "empty"
        empty_annotations.mkdir()
        output_dir = tmp_path / "out"

        code = self.run_cli([
            "--input", str(pages_dir),
            "--output", str(output_dir),
            "--annotations", str(empty_annotations),
            "--quiet",
        ])

        assert code == 1
        assert not (output_dir / "SnapScript_Extracted.docx").exists()

    def test_missing_api_key(self, pages_dir, tmp_path):
        code = self.run_cli([
            "--input", str(pages_dir),
            "--output", str(tmp_path / "out"),
            "--engine", "gemini",
            "--quiet",
        ])

        assert code == 1

    def test_no_images(self, tmp_path, annotations_dir):
        code = self.run_cli([
            "--input", str(tmp_path / "nothing_here"),
            "--output", str(tmp_path / "out"),
            "--annotations", str(annotations_dir),
            "--quiet",
        ])

        assert code == 1


    def test_unexpected_error_exits_with_failure(self, pages_dir, annotations_dir, tmp_path, monkeypatch):
        import snapscript.utils.io as snapscript_io

        def explode(paths):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(snapscript_io, "load_source_images", explode)

        code = self.run_cli([
            "--input", str(pages_dir),
            "--output", str(tmp_path / "out"),
            "--annotations", str(annotations_dir),
            "--quiet",
        ])

        assert code == 1

    def test_debug_env_reraises(self, pages_dir, annotations_dir, tmp_path, monkeypatch):
        import snapscript.utils.io as snapscript_io
        from snapscript.cli import main

        def explode(paths):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(snapscript_io, "load_source_images", explode)
        monkeypatch.setenv("SNAPSCRIPT_DEBUG", "true")

        with pytest.raises(RuntimeError, match="disk on fire"):
            main([
                "--input", str(pages_dir),
                "--output", str(tmp_path / "out"),
                "--annotations", str(annotations_dir),
            ])

        assert logging.getLogger().level == logging.DEBUG

class TestLoadSourceImages:
    """Test input discovery."""

    def test_folder_sorted_and_filtered(self, tmp_path):
        from snapscript.utils.io import load_source_images, detect_input_type

        for name in ["b.png", "a.jpg"]:
            Image.new("RGB", (5, 5), "white").save(tmp_path / name)
        (tmp_path / "readme.md").write_text("x", encoding="utf-8")
        (tmp_path / "corrupt.png").write_bytes(b"not a png")

        images = load_source_images([tmp_path])

        assert detect_input_type(tmp_path) == "image_folder"
        assert [i.name for i in images] == ["a.jpg", "b.png"]
        assert images[0].mime_type == "image/jpeg"

    def test_unknown_inputs(self, tmp_path):
        from snapscript.utils.io import detect_input_type

        (tmp_path / "doc.pdf").write_bytes(b"%PDF")

        assert detect_input_type(tmp_path / "doc.pdf") == "unknown"
        assert detect_input_type(tmp_path / "missing.png") == "unknown"
