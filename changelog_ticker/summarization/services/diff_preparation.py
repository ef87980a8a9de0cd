"""Preparation of triaged commits for the analysis prompt."""

import re
from dataclasses import dataclass

from changelog_ticker.git.domain.entities import CommitWithDetail
from changelog_ticker.git.domain.value_objects import FileChange
from changelog_ticker.git.services.file_filter_service import FileFilterService
from changelog_ticker.summarization.domain.value_objects import AnalysisTier, PreparedCommit

_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class DiffBundle:
    """Budgeted diff text of one commit."""

    diff: str
    files_considered: tuple[str, ...]
    skipped_files: tuple[str, ...]
    truncated_lines: int


class CommitDiffPreparer:
    """Build budgeted diffs, leaving test and generated files out."""

    def __init__(
        self,
        file_filter: FileFilterService | None = None,
        max_diff_lines: int = 500,
        skip_generated_files: bool = True,
    ) -> None:
        self._file_filter = file_filter or FileFilterService()
        self._max_diff_lines = max_diff_lines
        self._skip_generated_files = skip_generated_files

    def is_excluded(self, filename: str) -> bool:
        """Check if a file is kept out of the diff and listed as skipped."""
        if self._file_filter.is_test_file(filename):
            return True
        return self._skip_generated_files and self._file_filter.is_generated_file(filename)

    def build_diff(self, files: tuple[FileChange, ...]) -> DiffBundle:
        """
        Accumulate per-file patches up to the line budget.

        Excluded files never count against the budget. When the budget runs
        out mid-file that patch is cut; every omitted patch line is counted
        in ``truncated_lines``.

        Args:
            files: Changed files of the commit, in API order

        Returns:
            DiffBundle with the diff text and per-file bookkeeping
        """
        lines_left = max(0, self._max_diff_lines)
        parts: list[str] = []
        considered: list[str] = []
        skipped: list[str] = []
        truncated = 0

        for file in files:
            name = file.filename
            if not name:
                continue
            if self.is_excluded(name):
                skipped.append(name)
                continue

            considered.append(name)
            if not file.patch:
                continue

            patch_lines = _LINE_BREAK.split(file.patch)
            if lines_left == 0:
                truncated += len(patch_lines)
            elif len(patch_lines) > lines_left:
                parts.append(f"--- {name} (truncated)\n" + "\n".join(patch_lines[:lines_left]))
                truncated += len(patch_lines) - lines_left
                lines_left = 0
            else:
                parts.append(f"--- {name}\n" + "\n".join(patch_lines))
                lines_left -= len(patch_lines)

        return DiffBundle(
            diff="\n\n".join(parts),
            files_considered=tuple(considered),
            skipped_files=tuple(skipped),
            truncated_lines=truncated,
        )

    def prepare_full(self, commit: CommitWithDetail, tier: AnalysisTier) -> PreparedCommit:
        """Prepare a commit with its budgeted diff."""
        bundle = self.build_diff(commit.detail.files)
        return PreparedCommit(
            sha=commit.summary.sha,
            title=self._title(commit),
            importance_score=commit.summary.importance_score,
            category=commit.summary.category,
            tier=tier,
            files_considered=bundle.files_considered,
            skipped_files=bundle.skipped_files,
            truncated_diff_lines=bundle.truncated_lines,
            message=commit.detail.message or commit.summary.message,
            diff=bundle.diff,
        )

    def prepare_quick(self, commit: CommitWithDetail, tier: AnalysisTier) -> PreparedCommit:
        """Prepare a commit with message and filenames only."""
        considered: list[str] = []
        skipped: list[str] = []
        for file in commit.detail.files:
            if not file.filename:
                continue
            (skipped if self.is_excluded(file.filename) else considered).append(file.filename)

        return PreparedCommit(
            sha=commit.summary.sha,
            title=self._title(commit),
            importance_score=commit.summary.importance_score,
            category=commit.summary.category,
            tier=tier,
            files_considered=tuple(considered),
            skipped_files=tuple(skipped),
            truncated_diff_lines=0,
            message=commit.detail.message or commit.summary.message,
        )

    @staticmethod
    def _title(commit: CommitWithDetail) -> str:
        if commit.summary.headline:
            return commit.summary.headline
        return (commit.detail.message or "").split("\n", 1)[0]
