"""Deterministic triage of fetched commits: exclusion, category and importance."""

import re

from changelog_ticker.git.domain.entities import (
    CommitSummary,
    FilteredCommitSummary,
    SkippedCommit,
)
from changelog_ticker.git.domain.results import TriageMetrics, TriageResult
from changelog_ticker.git.domain.value_objects import (
    CATEGORY_ORDER,
    CommitCategory,
    SkipReason,
)

MEANINGFUL_MERGE_KEYWORDS: tuple[str, ...] = ("release", "hotfix", "security", "deploy", "backport")

CATEGORY_SCORES: dict[CommitCategory, int] = {
    CommitCategory.BREAKING: 10,
    CommitCategory.SECURITY: 9,
    CommitCategory.FEATURES: 8,
    CommitCategory.FIXES: 7,
    CommitCategory.PERFORMANCE: 6,
    CommitCategory.OTHER: 5,
}

_CONVENTIONAL_BREAKING = re.compile(r"^[a-z]+(\([^)]*\))?!:")
_DOCS_QUALIFIER = re.compile(r"api|sdk|public|external|breaking")
_TESTS_QUALIFIER = re.compile(r"new|coverage|integration|e2e|end-to-end")
_FORMATTING_WORD = re.compile(r"\bformat(ting)?\b")


def is_meaningful_merge(headline: str) -> bool:
    """Check whether a merge headline signals an intentional release-type merge."""
    lower = headline.lower()
    return any(keyword in lower for keyword in MEANINGFUL_MERGE_KEYWORDS)


def is_likely_bot_login(login: str | None) -> bool:
    if not login:
        return False
    normalized = login.lower()
    return (
        "[bot]" in normalized
        or normalized.startswith("bot-")
        or "dependabot" in normalized
        or "renovate" in normalized
        or "github-actions" in normalized
    )


def match_filter_patterns(headline: str) -> list[SkipReason]:
    """
    Match a lower-cased headline against the noise patterns.

    Returns:
        Every matching reason, in pattern order
    """
    reasons: list[SkipReason] = []

    if headline.startswith("merge "):
        reasons.append(SkipReason.MERGE_AUTO)

    if re.match(r"chore(\(|:)", headline) or "dependency" in headline or "deps" in headline:
        reasons.append(SkipReason.CHORE_DEPENDENCY)

    if re.match(r"docs?(\(|:)", headline) and not _DOCS_QUALIFIER.search(headline):
        reasons.append(SkipReason.DOCS_MINOR)

    if re.match(r"tests?(\(|:)", headline) and not _TESTS_QUALIFIER.search(headline):
        reasons.append(SkipReason.TESTS_MINOR)

    if re.match(r"style(\(|:)", headline) or _FORMATTING_WORD.search(headline):
        reasons.append(SkipReason.STYLE_FORMATTING)

    if re.match(r"(ci|build)(\(|:)", headline):
        reasons.append(SkipReason.CI_CD)

    return reasons


def categorize_commit(headline: str, message: str) -> CommitCategory:
    """
    Assign a category by keyword precedence.

    Args:
        headline: Lower-cased subject line
        message: Lower-cased full message
    """
    if (
        "breaking change" in headline
        or "breaking change" in message
        or _CONVENTIONAL_BREAKING.match(headline)
    ):
        return CommitCategory.BREAKING

    if "security" in headline or "vuln" in headline or "cve" in headline:
        return CommitCategory.SECURITY

    if headline.startswith("feat") or "feature" in headline or "feature" in message:
        return CommitCategory.FEATURES

    if (
        headline.startswith("fix")
        or "bugfix" in headline
        or "patch" in headline
        or "hotfix" in headline
    ):
        return CommitCategory.FIXES

    if headline.startswith("perf") or "performance" in headline or "optimiz" in headline:
        return CommitCategory.PERFORMANCE

    return CommitCategory.OTHER


def derive_importance_score(category: CommitCategory, headline: str) -> int:
    """Fixed score per category, refined by keyword for uncategorized commits."""
    if category is not CommitCategory.OTHER:
        return CATEGORY_SCORES[category]
    if "refactor" in headline:
        return 4
    if "doc" in headline:
        return 3
    if "style" in headline or "format" in headline:
        return 1
    return CATEGORY_SCORES[CommitCategory.OTHER]


class CommitTriageService:
    """
    Service filtering noise commits and ranking the rest.

    The service is pure: identical input always yields identical output.
    """

    def evaluate(self, commit: CommitSummary) -> list[SkipReason]:
        """
        Collect every exclusion reason that applies to a commit.

        Args:
            commit: Commit to evaluate

        Returns:
            Exclusion reasons, empty if the commit is retained
        """
        reasons: list[SkipReason] = []

        if commit.parent_count > 1 and not is_meaningful_merge(commit.headline):
            reasons.append(SkipReason.MERGE_COMMIT)

        if commit.author_is_bot or is_likely_bot_login(commit.author_login):
            reasons.append(SkipReason.BOT_AUTHOR)

        reasons.extend(match_filter_patterns(commit.headline.lower()))
        return reasons

    def triage(self, commits: tuple[CommitSummary, ...] | list[CommitSummary]) -> TriageResult:
        """
        Split commits into retained and skipped, categorize and sort.

        Args:
            commits: Fetched commits, in fetch order

        Returns:
            TriageResult with retained commits sorted by importance then recency
        """
        retained: list[FilteredCommitSummary] = []
        skipped: list[SkippedCommit] = []

        for commit in commits:
            reasons = self.evaluate(commit)
            if reasons:
                skipped.append(
                    SkippedCommit(
                        sha=commit.sha,
                        reasons=tuple(reason.value for reason in reasons),
                        message=commit.message,
                        author_login=commit.author_login,
                        committed_date=commit.committed_date,
                    )
                )
                continue

            headline = commit.headline.lower()
            category = categorize_commit(headline, commit.message.lower())
            retained.append(
                FilteredCommitSummary.from_summary(
                    commit, category, derive_importance_score(category, headline)
                )
            )

        ordered = self.sort_by_importance(retained)
        grouped = {
            category: tuple(c for c in ordered if c.category is category)
            for category in CATEGORY_ORDER
        }

        total_input = len(commits)
        reduction_percent = (
            int((total_input - len(ordered)) / total_input * 100 + 0.5) if total_input else 0
        )
        metrics = TriageMetrics(
            total_input=total_input,
            total_retained=len(ordered),
            total_skipped=len(skipped),
            reduction_percent=reduction_percent,
            category_breakdown={category: len(grouped[category]) for category in CATEGORY_ORDER},
        )

        return TriageResult(
            retained=ordered,
            grouped=grouped,
            skipped=tuple(skipped),
            metrics=metrics,
        )

    @staticmethod
    def sort_by_importance(
        commits: list[FilteredCommitSummary],
    ) -> tuple[FilteredCommitSummary, ...]:
        """Sort by importance score, then by commit date, most recent first."""
        return tuple(
            sorted(
                commits,
                key=lambda c: (c.importance_score, c.committed_date),
                reverse=True,
            )
        )
