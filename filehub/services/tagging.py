"""File tagging - local heuristics and model-backed proposals."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx

from filehub.errors import TaggingFailed
from filehub.providers.llm import LLMProvider
from filehub.result import Err, Ok, Result
from filehub.services.extraction import get_file_extension

logger = logging.getLogger(__name__)

MAX_TAGS = 7
MIN_MODEL_TAGS = 3
CONTENT_SCAN_CHARS = 2000

_NON_TAG_CHARS = re.compile(r"[^a-z0-9]+")


@dataclass
class FileContext:
    """What a tagger may look at."""

    name: str
    mime_type: str | None = None
    size_bytes: int | None = None
    channel_name: str | None = None
    existing_tags: list[str] = field(default_factory=list)
    content: str | None = None


@dataclass
class TagProposal:
    tags: list[str]
    category: str
    confidence: float
    summary: str


def normalize_tag(raw: str) -> str:
    """Lowercase, hyphen-joined ``[a-z0-9]`` runs. Returns '' for junk."""
    return _NON_TAG_CHARS.sub("-", str(raw).lower()).strip("-")


def normalize_tags(raw_tags, limit: int | None = MAX_TAGS) -> list[str]:
    """Normalize, drop empties and repeats, keep first-seen order."""
    seen: dict[str, None] = {}
    for raw in raw_tags:
        tag = normalize_tag(raw)
        if tag:
            seen.setdefault(tag, None)
    tags = list(seen)
    return tags[:limit] if limit else tags


class Tagger(ABC):
    """Tagging capability. ``tag`` never raises; failures come back as issues."""

    async def tag(self, context: FileContext) -> Result[TagProposal]:
        try:
            proposal = await self.propose(context)
        except TaggingFailed as e:
            logger.warning("Tagging failed for %s: %s", context.name, e.message)
            return Err([e.issue])
        return Ok(proposal)

    @abstractmethod
    async def propose(self, context: FileContext) -> TagProposal:
        """Produce a proposal or raise TaggingFailed."""
        ...


# ---------------------------------------------------------------------------
# Local heuristics
# ---------------------------------------------------------------------------

EXTENSION_TAGS: dict[str, list[str]] = {
    "pdf": ["document", "pdf"],
    "doc": ["document", "word"],
    "docx": ["document", "word"],
    "xls": ["spreadsheet", "excel"],
    "xlsx": ["spreadsheet", "excel"],
    "ppt": ["presentation", "powerpoint"],
    "pptx": ["presentation", "powerpoint"],
    "jpg": ["image", "photo"],
    "jpeg": ["image", "photo"],
    "png": ["image", "graphic"],
    "gif": ["image", "animated"],
    "svg": ["image", "vector"],
    "mp4": ["video", "media"],
    "mov": ["video", "media"],
    "mp3": ["audio", "media"],
    "wav": ["audio", "media"],
    "zip": ["archive", "compressed"],
    "rar": ["archive", "compressed"],
    "json": ["data", "config", "json"],
    "xml": ["data", "markup"],
    "csv": ["data", "spreadsheet"],
    "txt": ["text", "plain"],
    "md": ["text", "markdown", "documentation"],
    "ts": ["code", "typescript"],
    "tsx": ["code", "typescript", "react"],
    "js": ["code", "javascript"],
    "jsx": ["code", "javascript", "react"],
    "py": ["code", "python"],
    "java": ["code", "java"],
    "go": ["code", "golang"],
    "rs": ["code", "rust"],
    "sql": ["code", "database"],
    "html": ["code", "web"],
    "css": ["code", "styles"],
    "scss": ["code", "styles"],
}

NAME_PATTERNS: list[tuple[re.Pattern, list[str]]] = [
    (re.compile(p, re.IGNORECASE), tags)
    for p, tags in [
        (r"readme", ["documentation", "readme"]),
        (r"package\.json", ["config", "npm", "dependencies"]),
        (r"config", ["config", "settings"]),
        (r"docker", ["config", "docker", "deployment"]),
        (r"test|spec", ["test", "testing"]),
        (r"report", ["report", "document"]),
        (r"invoice|receipt", ["finance", "invoice"]),
        (r"contract|agreement", ["legal", "contract"]),
        (r"resume|\bcv\b", ["hr", "resume"]),
        (r"meeting|minutes", ["meeting", "notes"]),
        (r"notes?\b", ["notes"]),
        (r"design|mockup|wireframe", ["design", "ui"]),
        (r"roadmap|plan", ["planning", "roadmap"]),
        (r"budget|expense", ["finance", "budget"]),
        (r"screenshot|screen", ["screenshot", "capture"]),
        (r"logo|icon|brand", ["branding", "logo"]),
        (r"api|endpoint", ["api", "integration"]),
        (r"schema|model", ["data", "schema"]),
        (r"backup", ["backup", "archive"]),
        (r"error|bug", ["debug", "error"]),
        (r"security|auth", ["security", "auth"]),
        (r"dashboard", ["dashboard", "analytics"]),
        (r"chart|graph", ["chart", "visualization"]),
    ]
]

CONTENT_PATTERNS: list[tuple[re.Pattern, list[str]]] = [
    (re.compile(p, re.IGNORECASE), tags)
    for p, tags in [
        (r"\b(invoice|amount due|total due)\b", ["finance", "invoice"]),
        (r"\b(agenda|action items|attendees)\b", ["meeting", "notes"]),
        (r"\b(roadmap|milestone|quarter)\b", ["planning", "roadmap"]),
        (r"\b(def|class|import|function)\b", ["code"]),
        (r"\b(password|token|oauth|login)\b", ["security", "auth"]),
    ]
]


class LocalTagger(Tagger):
    """Deterministic, network-free tags from filename, MIME type and content."""

    def generate_tags(
        self,
        name: str,
        mime_type: str | None = None,
        content: str | None = None,
    ) -> list[str]:
        tags: list[str] = []
        lowered = name.lower()
        ext = get_file_extension(lowered)

        tags.extend(EXTENSION_TAGS.get(ext, []))

        for pattern, pattern_tags in NAME_PATTERNS:
            if pattern.search(lowered):
                tags.extend(pattern_tags)

        if mime_type:
            major, _, minor = mime_type.lower().partition("/")
            if major in ("image", "video", "audio", "text"):
                tags.append(major)
            elif major == "application" and minor in ("pdf", "json"):
                tags.append(minor)

        if content:
            excerpt = content[:CONTENT_SCAN_CHARS]
            for pattern, pattern_tags in CONTENT_PATTERNS:
                if pattern.search(excerpt):
                    tags.extend(pattern_tags)

        normalized = normalize_tags(tags)
        if not normalized:
            normalized = normalize_tags(["file", ext or "unknown"])
        return normalized

    async def propose(self, context: FileContext) -> TagProposal:
        tags = self.generate_tags(context.name, context.mime_type, context.content)
        return TagProposal(
            tags=tags,
            category=tags[0],
            confidence=0.5,
            summary=f"Heuristic tags for {context.name}",
        )


# ---------------------------------------------------------------------------
# Model-backed tagging
# ---------------------------------------------------------------------------

def build_tagging_prompt(context: FileContext) -> str:
    lines = [f"File name: {context.name}"]
    if context.mime_type:
        lines.append(f"Type: {context.mime_type}")
    if context.size_bytes:
        lines.append(f"Size: {round(context.size_bytes / 1024)} KB")
    if context.channel_name:
        lines.append(f"Channel: {context.channel_name}")
    if context.existing_tags:
        lines.append(f"Existing tags: {', '.join(context.existing_tags)}")
    if context.content:
        lines.append(f"Content excerpt:\n{context.content[:1000]}")
    metadata = "\n".join(lines)

    return f"""You classify files in a team workspace so people can find them later.

## File
{metadata}

## Rules
- Produce {MIN_MODEL_TAGS} to {MAX_TAGS} specific tags (avoid generic ones like "document").
- Cover type, topic and project or team where it is evident.
- Tags are lowercase and hyphenated, e.g. "project-alpha", "q4-2025".

## Output
Reply with a single JSON object:
{{
  "tags": ["tag1", "tag2", "tag3"],
  "category": "main category, e.g. engineering, design, marketing",
  "confidence": 0.0,
  "summary": "one sentence on what the file likely contains"
}}

Example for "bug-fix-auth-flow.mp4":
{{"tags": ["bug-fix", "authentication", "engineering", "video-recording"],
  "category": "engineering", "confidence": 0.85,
  "summary": "Screen recording of an authentication bug fix"}}"""


def parse_tag_proposal(result_text: str | None) -> TagProposal:
    """Parse and validate the model's JSON reply. Raises TaggingFailed."""
    # Refusals and tool-call replies carry null content
    if not isinstance(result_text, str):
        raise TaggingFailed(f"Model reply has no text content: {result_text!r}")
    text = result_text.strip()
    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        text = text[start:end].strip()
    elif "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        text = text[start:end].strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TaggingFailed(f"Model reply is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise TaggingFailed("Model reply is not a JSON object")

    raw_tags = data.get("tags")
    if not isinstance(raw_tags, list) or not MIN_MODEL_TAGS <= len(raw_tags) <= MAX_TAGS:
        raise TaggingFailed(f"Expected {MIN_MODEL_TAGS}-{MAX_TAGS} tags, got {raw_tags!r}")

    category = data.get("category")
    if not isinstance(category, str) or not category.strip():
        raise TaggingFailed("Missing category")

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) \
            or not 0.0 <= confidence <= 1.0:
        raise TaggingFailed(f"Confidence out of range: {confidence!r}")

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip() or len(summary) > 200:
        raise TaggingFailed("Summary missing or longer than 200 characters")

    tags = normalize_tags(raw_tags)
    if not tags:
        raise TaggingFailed("No usable tags after normalization")

    return TagProposal(
        tags=tags,
        category=normalize_tag(category) or category.strip(),
        confidence=float(confidence),
        summary=summary.strip(),
    )


class LLMTagger(Tagger):
    """Asks an LLM for a tag proposal and validates the JSON it returns."""

    def __init__(self, llm: LLMProvider, temperature: float = 0.5, max_tokens: int = 500):
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def propose(self, context: FileContext) -> TagProposal:
        messages = [{"role": "user", "content": build_tagging_prompt(context)}]
        try:
            reply = await self._llm.chat(
                messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                json_mode=True,
            )
        except (
            httpx.HTTPError, KeyError, IndexError, TypeError, AttributeError, ValueError,
        ) as e:
            raise TaggingFailed(f"LLM call failed: {e}") from e

        proposal = parse_tag_proposal(reply)
        logger.info(
            "LLM tags for %s: %s (confidence %.2f)",
            context.name, proposal.tags, proposal.confidence,
        )
        return proposal
