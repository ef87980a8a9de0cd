"""Collapse per-commit release lines into bounded bullet lists per category."""

import logging
import re
from collections.abc import Iterable

from changelog_ticker.config import SummarizationConfig
from changelog_ticker.git.domain.value_objects import CATEGORY_ORDER, CommitCategory
from changelog_ticker.summarization.domain.value_objects import (
    CategorySummaryMetrics,
    CategorySummaryResult,
    Stage2CommitResult,
)
from changelog_ticker.summarization.prompts import (
    build_category_system_prompt,
    build_category_user_prompt,
    build_executive_system_prompt,
    build_executive_user_prompt,
)
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository
from changelog_ticker.summarization.services.response_decoding import (
    DecodedResponse,
    DecodeMethod,
    decode_model_response,
)
from changelog_ticker.utils.audit import AuditLog

logger = logging.getLogger(__name__)

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def dedupe(items: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping the first casing and order."""
    seen: set[str] = set()
    unique: list[str] = []
    for item in items:
        text = item.strip()
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        unique.append(text)
    return unique


def commit_change_lines(commit: Stage2CommitResult) -> list[str]:
    """
    Lines describing one commit.

    The release-note line wins; otherwise the user-facing descriptions,
    each prefixed by its scope or first component, joined with "; ";
    otherwise the commit title.
    """
    if commit.release_note_line:
        return [commit.release_note_line]

    descriptions: list[str] = []
    for change in commit.user_facing_changes:
        prefix = change.scope or (change.components[0] if change.components else None)
        descriptions.append(f"{prefix}: {change.description}" if prefix else change.description)
    descriptions = dedupe(descriptions)
    if descriptions:
        return ["; ".join(descriptions)]

    return [commit.title] if commit.title.strip() else []


def split_sentences(text: str) -> list[str]:
    return [sentence.strip() for sentence in _SENTENCE_END.split(text.strip()) if sentence.strip()]


class CategorySummarizationService:
    """Service producing category bullets and the executive summary."""

    def __init__(
        self,
        text_generator: TextGenerationRepository,
        config: SummarizationConfig | None = None,
    ) -> None:
        """
        Initialize CategorySummarizationService.

        Args:
            text_generator: Text generation capability
            config: Bullet and sentence caps
        """
        self._text_generator = text_generator
        self._config = config or SummarizationConfig()

    def collect_lines(
        self, commits: tuple[Stage2CommitResult, ...]
    ) -> dict[CommitCategory, list[str]]:
        """Gather deduplicated change lines per category, in fixed category order."""
        by_category: dict[CommitCategory, list[str]] = {category: [] for category in CATEGORY_ORDER}
        for commit in commits:
            by_category[commit.category].extend(commit_change_lines(commit))
        return {category: dedupe(lines) for category, lines in by_category.items()}

    async def summarize(self, commits: tuple[Stage2CommitResult, ...]) -> CategorySummaryResult:
        """
        Summarize every non-empty category, then write the executive summary.

        Args:
            commits: Impact analysis results

        Returns:
            CategorySummaryResult with at most ``max_bullets_per_category``
            unique bullets per category

        Raises:
            TextGenerationUnavailableError: Propagated from a guarded generator
        """
        audit = AuditLog(logger)
        audit.info("category_summarization_started", total_commits=len(commits))

        lines = self.collect_lines(commits)
        categories: dict[CommitCategory, tuple[str, ...]] = {}
        llm_calls = 0
        fallbacks = 0

        for category in CATEGORY_ORDER:
            changes = lines[category]
            if not changes:
                categories[category] = ()
                continue

            raw = await self._text_generator.generate(
                build_category_system_prompt(),
                build_category_user_prompt(
                    category, changes, self._config.max_bullets_per_category
                ),
            )
            llm_calls += 1

            bullets, method = self._bullets_from(decode_model_response(raw), "bullets")
            if method is not DecodeMethod.STRICT:
                fallbacks += 1
                audit.warn("category_decode_fallback", category=category.value, method=method.value)
            categories[category] = tuple(dedupe(bullets)[: self._config.max_bullets_per_category])

        raw_summary = await self._text_generator.generate(
            build_executive_system_prompt(self._config.max_summary_sentences),
            build_executive_user_prompt(categories),
        )
        llm_calls += 1
        summary, method = self._bullets_from(
            decode_model_response(raw_summary), "executive_summary"
        )
        if method is not DecodeMethod.STRICT:
            fallbacks += 1
            audit.warn("executive_summary_decode_fallback", method=method.value)
        sentences = [sentence for item in summary for sentence in split_sentences(item)]
        executive_summary = tuple(sentences[: self._config.max_summary_sentences])

        metrics = CategorySummaryMetrics(
            total_commits=len(commits),
            lines_per_category={category: len(lines[category]) for category in CATEGORY_ORDER},
            llm_calls=llm_calls,
            total_bullets=sum(len(bullets) for bullets in categories.values()),
            fallbacks_used=fallbacks,
        )
        audit.info(
            "category_summarization_completed",
            llm_calls=llm_calls,
            total_bullets=metrics.total_bullets,
        )

        return CategorySummaryResult(
            categories=categories,
            executive_summary=executive_summary,
            metrics=metrics,
            logs=audit.entries,
        )

    @staticmethod
    def _bullets_from(decoded: DecodedResponse, key: str) -> tuple[list[str], DecodeMethod]:
        """
        Read a list of strings from a decoded response.

        The value under ``key`` may be a list or a single string, which is
        split into sentences. Without a usable JSON value the scraped bullet
        lines are used.
        """
        if decoded.is_json:
            value = decoded.get(key)
            if value is None and isinstance(decoded.payload, list):
                value = decoded.payload
            if isinstance(value, list):
                items = [item.strip() for item in value if isinstance(item, str)]
                return [item for item in items if item], decoded.method
            if isinstance(value, str) and value.strip():
                return split_sentences(value), decoded.method
            return [], DecodeMethod.EMPTY
        return list(decoded.lines), decoded.method
