"""Rendering of the final changelog document."""

import logging
import re
from collections.abc import Callable
from datetime import date, datetime, timezone

from changelog_ticker.git.domain.value_objects import CommitCategory
from changelog_ticker.summarization.domain.value_objects import (
    AssemblyMetrics,
    AssemblyResult,
    ChangelogDocument,
    ChangelogMetadata,
    ChangelogTitle,
    CategorySummaryResult,
)
from changelog_ticker.summarization.prompts import (
    build_assembly_system_prompt,
    build_assembly_user_prompt,
)
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository
from changelog_ticker.summarization.services.response_decoding import decode_json
from changelog_ticker.utils.audit import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Release Summary"
EMPTY_CHANGELOG_TITLE = "No user-facing changes"
UNRELEASED = "Unreleased"
MAX_DERIVED_TITLE_LENGTH = 50

_FENCE = re.compile(r"^\s*(```|~~~)")
_LEADING_H1 = re.compile(r"^#(?!#)\s*\S.*$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LINE_MARKERS = re.compile(r"^(#+|[-*•>]|\d+\.)\s*")


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def normalize_markdown(markdown: str) -> str:
    """
    Tidy model-written Markdown.

    Outside code fences, trailing whitespace is stripped and runs of blank
    lines collapse to one. Fenced blocks are kept verbatim. A leading
    top-level title is removed since the title is carried separately.
    """
    lines = markdown.replace("\r\n", "\n").split("\n")
    output: list[str] = []
    in_fence = False
    blank_run = 0

    for line in lines:
        if _FENCE.match(line):
            in_fence = not in_fence
            output.append(line.rstrip())
            blank_run = 0
            continue
        if in_fence:
            output.append(line)
            continue

        stripped = line.rstrip()
        if not stripped:
            blank_run += 1
            if blank_run > 1:
                continue
        else:
            blank_run = 0
        output.append(stripped)

    while output and not output[0].strip():
        output.pop(0)
    if output and _LEADING_H1.match(output[0]):
        output.pop(0)

    return "\n".join(output).strip()


def derive_title(text: str) -> str | None:
    """First meaningful line of a text, without Markdown markers, shortened to 50 chars."""
    in_fence = False
    for line in text.splitlines():
        if _FENCE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        candidate = _LINE_MARKERS.sub("", line.strip()).strip("*_` ").strip()
        if candidate:
            if len(candidate) > MAX_DERIVED_TITLE_LENGTH:
                return candidate[:MAX_DERIVED_TITLE_LENGTH].rstrip() + "..."
            return candidate
    return None


class ChangelogAssemblyService:
    """Service rendering bullets and executive summary into one Markdown document."""

    def __init__(
        self,
        text_generator: TextGenerationRepository,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        """
        Initialize ChangelogAssemblyService.

        Args:
            text_generator: Text generation capability
            today: Clock used for the release date when no date range is given
        """
        self._text_generator = text_generator
        self._today = today

    def release_date(self, metadata: ChangelogMetadata) -> str:
        end = metadata.date_range.end
        return (end or self._today()).isoformat()

    def build_empty_document(self, metadata: ChangelogMetadata) -> ChangelogDocument:
        """Document for a run where no commit survived triage."""
        release_date = self.release_date(metadata)
        return ChangelogDocument(
            markdown="",
            title=ChangelogTitle(
                title=EMPTY_CHANGELOG_TITLE,
                date=release_date,
                version_number=metadata.version,
            ),
            version=metadata.version,
            release_date=release_date,
        )

    async def assemble(
        self, summary: CategorySummaryResult, metadata: ChangelogMetadata
    ) -> AssemblyResult:
        """
        Render the changelog with one model call.

        Never fails on malformed output: a JSON envelope, raw Markdown and
        no output at all each yield a usable document.

        Args:
            summary: Category bullets and executive summary
            metadata: Commit count, contributors, date range and version

        Returns:
            AssemblyResult with the document and its title

        Raises:
            TextGenerationUnavailableError: Propagated from a guarded generator
        """
        audit = AuditLog(logger)
        audit.info("assembly_started", total_bullets=summary.total_bullets)

        categories: dict[CommitCategory, tuple[str, ...]] = summary.categories
        raw = await self._text_generator.generate(
            build_assembly_system_prompt(),
            build_assembly_user_prompt(categories, summary.executive_summary, metadata),
        )

        fallback_date = self.release_date(metadata)
        decoded = decode_json(raw)
        envelope_markdown = decoded.get("markdown")
        used_envelope = isinstance(envelope_markdown, str)

        if used_envelope:
            body = envelope_markdown
            envelope_title = decoded.get("title")
            title_text = (
                envelope_title.strip()
                if isinstance(envelope_title, str) and envelope_title.strip()
                else derive_title(body)
            )
            version_number = decoded.get("version_number")
            envelope_date = decoded.get("date")
            title = ChangelogTitle(
                title=title_text or DEFAULT_TITLE,
                date=(
                    envelope_date
                    if isinstance(envelope_date, str) and _ISO_DATE.match(envelope_date)
                    else fallback_date
                ),
                version_number=(
                    version_number
                    if isinstance(version_number, str) and version_number
                    else metadata.version
                ),
            )
        else:
            body = (raw or "").strip()
            if body:
                audit.warn("assembly_envelope_missing", raw_length=len(body))
            else:
                audit.warn("assembly_empty_response")
            title = ChangelogTitle(
                title=derive_title(body) or DEFAULT_TITLE,
                date=fallback_date,
                version_number=metadata.version or UNRELEASED,
            )

        markdown = normalize_markdown(body)
        title_fallback = title.title == DEFAULT_TITLE
        document = ChangelogDocument(
            markdown=markdown,
            title=title,
            version=metadata.version,
            release_date=title.date,
        )

        metrics = AssemblyMetrics(
            llm_calls=1,
            markdown_length=len(markdown),
            used_envelope=used_envelope,
            title_fallback=title_fallback,
        )
        audit.info(
            "assembly_completed",
            markdown_length=metrics.markdown_length,
            title_length=len(title.title),
        )

        return AssemblyResult(document=document, metrics=metrics, logs=audit.entries)
