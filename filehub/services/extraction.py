"""Best-effort text extraction from raw file bytes."""

from __future__ import annotations

import asyncio
import codecs
import io
import logging
from dataclasses import dataclass

from filehub.errors import ExtractionFailed
from filehub.providers.llm import LLMProvider
from filehub.result import Err, Ok, Result

logger = logging.getLogger(__name__)

KNOWN_MIME_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "md": "text/markdown",
    "txt": "text/plain",
    "py": "text/x-python",
    "js": "text/javascript",
    "ts": "text/typescript",
    "java": "text/x-java",
    "go": "text/x-go",
    "json": "application/json",
    "yaml": "text/yaml",
    "yml": "text/yaml",
    "csv": "text/csv",
    "html": "text/html",
    "css": "text/css",
    "sql": "text/x-sql",
    "sh": "text/x-shellscript",
    "xml": "text/xml",
    "toml": "text/toml",
    "mp4": "video/mp4",
    "mp3": "audio/mpeg",
    "zip": "application/zip",
}

TEXT_EXTENSIONS = {
    "md", "txt", "py", "js", "ts", "java", "go",
    "json", "yaml", "yml", "csv", "html", "css",
    "sql", "sh", "xml", "toml",
}

TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/x-yaml",
    "application/toml",
}

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

DEFAULT_MAX_CHARS = 4000
DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB


@dataclass(frozen=True)
class ExtractedContent:
    text: str
    method: str
    truncated: bool


def get_file_extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def guess_mime_type(filename: str) -> str | None:
    return KNOWN_MIME_TYPES.get(get_file_extension(filename))


def _decode_plain(data: bytes) -> str:
    encodings = ("utf-8-sig", "gbk", "latin-1")
    if data[:2] in (codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE):
        encodings = ("utf-16",) + encodings
    for encoding in encodings:
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, ValueError):
            continue
    return data.decode("utf-8", errors="replace")


def _read_pdf(data: bytes) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(data))
    pages = []
    for page in reader.pages:
        text = page.extract_text()
        if text:
            pages.append(text)
    return "\n\n".join(pages)


def _read_docx(data: bytes) -> str:
    from docx import Document

    doc = Document(io.BytesIO(data))
    return "\n\n".join(p.text for p in doc.paragraphs if p.text.strip())


class ContentExtractor:
    """Dispatches bytes to an extractor by MIME type, then by extension.

    Supported: plain text and code, PDF text layer (pypdf), Word (python-docx),
    and images when a vision-capable LLM provider is supplied. Everything
    else is an extraction failure, which callers treat as non-fatal.
    """

    def __init__(
        self,
        vision: LLMProvider | None = None,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        self._vision = vision
        self._max_chars = max_chars
        self._max_file_size = max_file_size

    async def extract(
        self,
        data: bytes,
        mime_type: str | None,
        filename: str,
    ) -> Result[ExtractedContent]:
        try:
            text, method = await self._dispatch(data, (mime_type or "").lower(), filename)
        except ExtractionFailed as e:
            logger.info("No text extracted from %s: %s", filename, e.message)
            return Err([e.issue])
        except Exception as e:
            logger.warning("Extraction failed for %s: %s", filename, e)
            return Err([ExtractionFailed(f"{filename}: {e}").issue])

        # PostgreSQL text columns reject NUL
        text = text.replace("\x00", "") if isinstance(text, str) else ""
        if not text.strip():
            return Err([ExtractionFailed(f"{filename}: no text content").issue])

        truncated = len(text) > self._max_chars
        return Ok(ExtractedContent(text[: self._max_chars], method, truncated))

    async def _dispatch(self, data: bytes, mime_type: str, filename: str) -> tuple[str, str]:
        if len(data) > self._max_file_size:
            raise ExtractionFailed(
                f"{filename}: {len(data)} bytes exceeds {self._max_file_size} byte limit"
            )

        ext = get_file_extension(filename)

        if mime_type == "application/pdf" or ext == "pdf":
            return await asyncio.to_thread(_read_pdf, data), "pypdf"

        if mime_type == DOCX_MIME or ext == "docx":
            return await asyncio.to_thread(_read_docx, data), "python-docx"

        if mime_type.startswith("image/") or ext in IMAGE_EXTENSIONS:
            if self._vision is None:
                raise ExtractionFailed(f"{filename}: no vision provider for images")
            image_type = mime_type or KNOWN_MIME_TYPES.get(ext, f"image/{ext}")
            return await self._vision.describe_image(data, image_type), "vision"

        if (
            mime_type.startswith("text/")
            or mime_type in TEXT_APPLICATION_TYPES
            or ext in TEXT_EXTENSIONS
        ):
            return _decode_plain(data), "plain-text"

        raise ExtractionFailed(f"{filename}: unsupported type '{mime_type or ext or 'unknown'}'")
