"""
Annotators: image bytes -> annotated transcription.

The annotator is the external transcription step. It returns literal text
interleaved with ``[[CROP:ymin,xmin,ymax,xmax]]`` markers for regions it
declines to transcribe (formulas, structures, diagrams, charts).

Engines:
- gemini: Google Gemini ``generateContent`` REST API
- sidecar: pre-computed ``<image stem>.txt`` files, for replays and offline use

No retry policy is applied here; callers decide.
"""

import base64
import logging
from pathlib import Path
from typing import Optional, Union

import requests

from ..config import AnnotatorConfig

logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """
You are an expert OCR (Optical Character Recognition) assistant specialized in academic and scientific documents.
Your task is to transcribe the text from the provided image, but handle complex elements separately.

LOGIC FLOW:
1.  Scan the image from top to bottom, left to right.
2.  Identify regions: "Text" vs "Complex Element" (Chemical Formulas, Organic Structures, Geometry Diagrams, Charts).
3.  IF TEXT: Transcribe it exactly as it appears. Maintain lists and basic formatting.
4.  IF COMPLEX ELEMENT:
    -   DO NOT transcribe the text inside this element.
    -   DO NOT describe the element.
    -   Calculate the bounding box (0-1000 scale).
    -   Output ONLY the tag: [[CROP:ymin,xmin,ymax,xmax]]
    -   Resume transcription AFTER the element.

RULES:
-   ymin, xmin, ymax, xmax are integers from 0 to 1000.
-   The CROP tag replaces the content. Example: "The reaction of [[CROP:200,100,400,300]] yields..."
-   If a formula is inline (inside a sentence), put the tag inline.
-   If handwriting is illegible, write [Illegible].
-   Do not output markdown code blocks. Just raw text with the tags.
"""

USER_PROMPT = (
    "Transcribe text. Replace any charts, graphs, or chemical formulas "
    "with [[CROP:ymin,xmin,ymax,xmax]] tags."
)


class AnnotationError(RuntimeError):
    """Transcription of one file failed (network, API or empty output)."""


class Annotator:
    """Base class for annotators."""

    name = "base"

    def annotate(self, image_bytes: bytes, mime_type: str, name: Optional[str] = None) -> str:
        """
        Transcribe one image.

        Args:
            image_bytes: Encoded image
            mime_type: MIME type of ``image_bytes``
            name: Display name of the file, used by engines that look up by name

        Returns:
            Annotated text

        Raises:
            AnnotationError: If transcription fails
        """
        raise NotImplementedError


# ============================================================================
# Gemini Annotator
# ============================================================================

class GeminiAnnotator(Annotator):
    """Transcription using the Gemini generateContent API."""

    name = "gemini"
    DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.1,
        timeout: float = 60.0,
        api_base: str = DEFAULT_API_BASE
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")

    @property
    def url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def build_payload(self, image_bytes: bytes, mime_type: str) -> dict:
        image_b64 = base64.b64encode(image_bytes).decode('utf-8')
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{
                "role": "user",
                "parts": [
                    {"inlineData": {"mimeType": mime_type, "data": image_b64}},
                    {"text": USER_PROMPT},
                ],
            }],
            "generationConfig": {"temperature": self.temperature},
        }

    def annotate(self, image_bytes: bytes, mime_type: str, name: Optional[str] = None) -> str:
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json"
        }

        try:
            response = requests.post(
                self.url,
                headers=headers,
                json=self.build_payload(image_bytes, mime_type or "image/png"),
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Gemini API error for {name or 'image'}: {e}")
            raise AnnotationError(f"Gemini API error: {e}") from e
        except ValueError as e:
            raise AnnotationError(f"Malformed response from Gemini API: {e}") from e

        try:
            text = self._extract_text(result)
        except (AttributeError, TypeError, IndexError) as e:
            raise AnnotationError(f"Malformed response from Gemini API: {e}") from e
        if not text.strip():
            raise AnnotationError("No text generated from the model.")

        return text.strip()

    @staticmethod
    def _extract_text(result: dict) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = result.get("candidates") or []
        if not candidates:
            feedback = result.get("promptFeedback", {})
            reason = feedback.get("blockReason")
            if reason:
                raise AnnotationError(f"Request blocked by the model: {reason}")
            return ""

        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)


# ============================================================================
# Sidecar Annotator
# ============================================================================

class SidecarAnnotator(Annotator):
    """Reads pre-computed annotations from ``<annotations_dir>/<stem><suffix>``."""

    name = "sidecar"

    def __init__(self, annotations_dir: Union[str, Path], suffix: str = ".txt"):
        self.annotations_dir = Path(annotations_dir)
        self.suffix = suffix

    def path_for(self, name: str) -> Path:
        return self.annotations_dir / f"{Path(name).stem}{self.suffix}"

    def annotate(self, image_bytes: bytes, mime_type: str, name: Optional[str] = None) -> str:
        if not name:
            raise AnnotationError("Sidecar annotations are looked up by file name")

        path = self.path_for(name)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise AnnotationError(f"No annotation for {name}: {e}") from e
        except UnicodeDecodeError as e:
            raise AnnotationError(f"Annotation file is not valid UTF-8: {path}") from e

        if not text.strip():
            raise AnnotationError(f"Annotation file is empty: {path}")

        return text.strip()


# ============================================================================
# Factory
# ============================================================================

def get_annotator(config: AnnotatorConfig) -> Annotator:
    """Create the annotator selected in ``config``."""
    engine = config.engine.lower()

    if engine == "gemini":
        if not config.api_key:
            raise ValueError("Gemini requires an API key (set GEMINI_API_KEY)")
        return GeminiAnnotator(
            api_key=config.api_key,
            model=config.model,
            temperature=config.temperature,
            timeout=config.timeout,
            api_base=config.api_base
        )

    if engine == "sidecar":
        if not config.annotations_dir:
            raise ValueError("Sidecar engine requires an annotations directory")
        return SidecarAnnotator(config.annotations_dir)

    raise ValueError(f"Unknown annotator engine: {config.engine}")
