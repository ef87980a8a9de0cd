"""Tiered extraction of user-facing impact from commit diffs."""

import logging
from collections import Counter
from typing import Any

from changelog_ticker.config import AnalysisConfig
from changelog_ticker.git.domain.entities import CommitWithDetail
from changelog_ticker.summarization.domain.value_objects import (
    TIER3_PLACEHOLDER_SUMMARY,
    AnalysisStrategy,
    AnalysisTier,
    Audience,
    ChangeType,
    CommitAnalysis,
    ImpactAnalysisMetrics,
    ImpactAnalysisResult,
    ImpactLevel,
    PreparedCommit,
    Stage2CommitResult,
    UserFacingChange,
    derive_overall_impact,
)
from changelog_ticker.summarization.prompts import (
    build_analysis_system_prompt,
    build_analysis_user_prompt,
    build_writer_system_prompt,
    build_writer_user_prompt,
)
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository
from changelog_ticker.summarization.services.diff_preparation import CommitDiffPreparer
from changelog_ticker.summarization.services.response_decoding import (
    DecodedResponse,
    decode_json,
)
from changelog_ticker.utils.audit import AuditLog

logger = logging.getLogger(__name__)

MIN_SHA_PREFIX = 7


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _as_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _items(decoded: DecodedResponse) -> list[dict[str, Any]]:
    """Per-commit items of an analysis or writer payload."""
    raw = decoded.payload if isinstance(decoded.payload, list) else decoded.get("commits")
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict) and _as_text(item.get("sha"))]


def parse_user_facing_change(raw: dict[str, Any]) -> UserFacingChange | None:
    """Map one primary-schema change; None if it has no description."""
    description = _as_text(raw.get("description"))
    if description is None:
        return None

    audiences: list[Audience] = []
    for value in _as_list(raw.get("audiences")):
        try:
            audiences.append(Audience(str(value).strip().lower()))
        except ValueError:
            continue

    components = tuple(
        component.strip()
        for component in _as_list(raw.get("components"))
        if isinstance(component, str) and component.strip()
    )

    return UserFacingChange(
        type=ChangeType.from_text(raw.get("type")),
        description=description,
        impact=ImpactLevel.from_text(raw.get("impact")),
        scope=_as_text(raw.get("scope")),
        audiences=tuple(audiences),
        components=components,
        breaking=_as_bool(raw.get("breaking")),
        deprecation=_as_bool(raw.get("deprecation")),
        technical_detail=_as_text(raw.get("technical_detail")),
        migration_required=_as_bool(raw.get("migration_required")),
    )


def parse_analysis(decoded: DecodedResponse) -> list[CommitAnalysis]:
    """
    Decode an analysis payload, accepting both schemas per item.

    The primary schema carries a ``user_facing_changes`` list; the fallback
    schema a single ``user_facing_change`` string with category and impact.
    """
    analyses: list[CommitAnalysis] = []

    for item in _items(decoded):
        sha = item["sha"].strip().lower()
        changes = item.get("user_facing_changes")

        if isinstance(changes, list):
            parsed = tuple(
                change
                for change in (
                    parse_user_facing_change(raw) for raw in changes if isinstance(raw, dict)
                )
                if change is not None
            )
            analyses.append(
                CommitAnalysis(
                    sha=sha,
                    user_facing_changes=parsed,
                    analysis_summary=_as_text(item.get("analysis_summary")),
                )
            )
            continue

        description = _as_text(item.get("user_facing_change"))
        if description is None:
            continue

        migration_required = _as_bool(item.get("migration_required"))
        change_type = ChangeType.from_text(item.get("category"))
        technical_detail = _as_text(item.get("technical_detail"))
        analyses.append(
            CommitAnalysis(
                sha=sha,
                user_facing_changes=(
                    UserFacingChange(
                        type=change_type,
                        description=description,
                        impact=ImpactLevel.from_text(item.get("impact")),
                        breaking=change_type is ChangeType.BREAKING or migration_required,
                        deprecation=migration_required,
                        technical_detail=technical_detail,
                        migration_required=migration_required,
                    ),
                ),
                analysis_summary=_as_text(item.get("analysis_summary")) or technical_detail,
            )
        )

    return analyses


def parse_release_lines(decoded: DecodedResponse) -> dict[str, str]:
    """Decode a writer payload into ``sha -> release note line``."""
    lines: dict[str, str] = {}
    for item in _items(decoded):
        line = _as_text(item.get("release_note_line"))
        if line is not None:
            lines.setdefault(item["sha"].strip().lower(), line)
    return lines


def resolve_sha(candidate: str, known: list[str]) -> str | None:
    """
    Match a sha echoed by the model to a prepared commit.

    Accepts an exact match, or an unambiguous prefix of at least 7 characters.
    """
    if candidate in known:
        return candidate
    if len(candidate) < MIN_SHA_PREFIX:
        return None
    matches = [sha for sha in known if sha.startswith(candidate)]
    return matches[0] if len(matches) == 1 else None


class ImpactAnalysisService:
    """
    Service extracting user-facing impact and release-note lines per commit.

    Each group of commits costs two model calls: one to analyze, one to
    write release lines from the analysis.
    """

    def __init__(
        self,
        text_generator: TextGenerationRepository,
        config: AnalysisConfig | None = None,
        diff_preparer: CommitDiffPreparer | None = None,
    ) -> None:
        """
        Initialize ImpactAnalysisService.

        Args:
            text_generator: Text generation capability
            config: Strategy thresholds, batch sizes and diff budget
            diff_preparer: Diff builder. Built from the config when omitted
        """
        self._text_generator = text_generator
        self._config = config or AnalysisConfig()
        self._preparer = diff_preparer or CommitDiffPreparer(
            max_diff_lines=self._config.max_diff_lines,
            skip_generated_files=self._config.skip_generated_files,
        )

    def select_strategy(self, total: int) -> AnalysisStrategy:
        if total <= self._config.batch_strategy_max_commits:
            return AnalysisStrategy.BATCH
        return AnalysisStrategy.TIERED

    def tier_for(self, score: int) -> AnalysisTier:
        return AnalysisTier.for_score(
            score, self._config.tier1_min_score, self._config.tier2_min_score
        )

    async def analyze(self, commits: tuple[CommitWithDetail, ...]) -> ImpactAnalysisResult:
        """
        Analyze detailed commits with the batch or tiered strategy.

        Args:
            commits: Detailed commits in triage order

        Returns:
            ImpactAnalysisResult with one Stage2CommitResult per commit

        Raises:
            TextGenerationUnavailableError: Propagated from a guarded generator
        """
        audit = AuditLog(logger)
        counters: Counter[str] = Counter(total_commits=len(commits))
        strategy = self.select_strategy(len(commits))
        results: list[Stage2CommitResult] = []

        audit.info("impact_analysis_started", total_commits=len(commits), strategy=strategy.value)

        tiers: dict[AnalysisTier, list[CommitWithDetail]] = {tier: [] for tier in AnalysisTier}
        for commit in commits:
            tiers[self.tier_for(commit.summary.importance_score)].append(commit)
        counters.update(
            tier1=len(tiers[AnalysisTier.FULL]),
            tier2=len(tiers[AnalysisTier.QUICK]),
            tier3=len(tiers[AnalysisTier.SKIPPED]),
        )

        if strategy is AnalysisStrategy.BATCH:
            size = max(1, self._config.batch_group_size)
            for start in range(0, len(commits), size):
                prepared = [
                    self._preparer.prepare_full(
                        commit, self.tier_for(commit.summary.importance_score)
                    )
                    for commit in commits[start : start + size]
                ]
                results.extend(
                    await self._analyze_group(
                        prepared, quick=False, individual=False, counters=counters, audit=audit
                    )
                )
        else:
            for commit in tiers[AnalysisTier.FULL]:
                prepared = [self._preparer.prepare_full(commit, AnalysisTier.FULL)]
                results.extend(
                    await self._analyze_group(
                        prepared, quick=False, individual=True, counters=counters, audit=audit
                    )
                )

            tier2 = tiers[AnalysisTier.QUICK]
            size = max(1, self._config.quick_batch_size)
            for start in range(0, len(tier2), size):
                prepared = [
                    self._preparer.prepare_quick(commit, AnalysisTier.QUICK)
                    for commit in tier2[start : start + size]
                ]
                results.extend(
                    await self._analyze_group(
                        prepared, quick=True, individual=False, counters=counters, audit=audit
                    )
                )

            for commit in tiers[AnalysisTier.SKIPPED]:
                prepared_commit = self._preparer.prepare_full(commit, AnalysisTier.SKIPPED)
                results.append(
                    self._to_result(prepared_commit, None, None, TIER3_PLACEHOLDER_SUMMARY)
                )
                counters["skipped_no_llm"] += 1

        metrics = ImpactAnalysisMetrics(**counters)
        audit.info(
            "impact_analysis_completed",
            analyzed=metrics.analyzed_commits,
            llm_calls=metrics.llm_calls,
            strategy=strategy.value,
        )

        return ImpactAnalysisResult(
            strategy=strategy,
            commits=tuple(results),
            metrics=metrics,
            logs=audit.entries,
        )

    async def _analyze_group(
        self,
        prepared: list[PreparedCommit],
        quick: bool,
        individual: bool,
        counters: Counter[str],
        audit: AuditLog,
    ) -> list[Stage2CommitResult]:
        """Run the analyze and write calls for one group and merge by sha."""
        call_kind = "individual_calls" if individual else "batched_calls"
        known = [commit.sha for commit in prepared]

        raw = await self._text_generator.generate(
            build_analysis_system_prompt(), build_analysis_user_prompt(prepared, quick)
        )
        counters["llm_calls"] += 1
        counters[call_kind] += 1

        decoded = decode_json(raw)
        if raw is not None and not decoded.is_json:
            counters["decode_failures"] += 1
            audit.warn("analysis_decode_failed", shas=known)

        analyses: dict[str, CommitAnalysis] = {}
        for analysis in parse_analysis(decoded):
            sha = resolve_sha(analysis.sha, known)
            if sha is not None and sha not in analyses:
                analyses[sha] = analysis

        release_lines: dict[str, str] = {}
        if analyses:
            raw_lines = await self._text_generator.generate(
                build_writer_system_prompt(), build_writer_user_prompt(list(analyses.values()))
            )
            counters["llm_calls"] += 1
            counters[call_kind] += 1

            decoded_lines = decode_json(raw_lines)
            if raw_lines is not None and not decoded_lines.is_json:
                counters["decode_failures"] += 1
                audit.warn("writer_decode_failed", shas=known)

            for candidate, line in parse_release_lines(decoded_lines).items():
                sha = resolve_sha(candidate, known)
                if sha is not None:
                    release_lines.setdefault(sha, line)
        else:
            audit.warn("writer_skipped_empty_analysis", shas=known)

        counters["analyzed_commits"] += len(prepared)
        return [
            self._to_result(commit, analyses.get(commit.sha), release_lines.get(commit.sha))
            for commit in prepared
        ]

    @staticmethod
    def _to_result(
        prepared: PreparedCommit,
        analysis: CommitAnalysis | None,
        release_note_line: str | None,
        summary_override: str | None = None,
    ) -> Stage2CommitResult:
        changes = analysis.user_facing_changes if analysis else ()
        return Stage2CommitResult(
            sha=prepared.sha,
            title=prepared.title,
            importance_score=prepared.importance_score,
            category=prepared.category,
            tier=prepared.tier,
            files_considered=prepared.files_considered,
            skipped_files=prepared.skipped_files,
            truncated_diff_lines=prepared.truncated_diff_lines,
            analysis_summary=summary_override or (analysis.analysis_summary if analysis else None),
            user_facing_changes=changes,
            release_note_line=release_note_line,
            overall_impact=derive_overall_impact(changes),
            migration_required=any(change.migration_required for change in changes),
        )
