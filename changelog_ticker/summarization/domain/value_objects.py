"""Value objects for Summarization domain."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum, IntEnum

from changelog_ticker.git.domain.value_objects import CommitCategory
from changelog_ticker.utils.audit import AuditLogEntry


class ChangeType(str, Enum):
    """Kind of user-facing change extracted from a commit."""

    FEATURE = "feature"
    FIX = "fix"
    BREAKING = "breaking"
    PERFORMANCE = "performance"
    SECURITY = "security"
    DOCS = "docs"
    OTHER = "other"

    @classmethod
    def from_text(cls, value: object) -> "ChangeType":
        """Map model output onto a change type. Unknown values map to OTHER."""
        match str(value or "").strip().lower():
            case "feature" | "features" | "feat":
                return cls.FEATURE
            case "fix" | "fixes" | "bugfix" | "bug":
                return cls.FIX
            case "breaking":
                return cls.BREAKING
            case "performance" | "perf":
                return cls.PERFORMANCE
            case "security":
                return cls.SECURITY
            case "docs" | "doc" | "documentation":
                return cls.DOCS
            case _:
                return cls.OTHER


class ImpactLevel(str, Enum):
    """How strongly a change affects users."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_text(cls, value: object) -> "ImpactLevel":
        """Map model output onto an impact level. Unknown values map to MEDIUM."""
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


class Audience(str, Enum):
    """Who notices a change."""

    END_USER = "end_user"
    DEVELOPER = "developer"
    ADMIN = "admin"
    API_CLIENT = "api_client"


class AnalysisTier(IntEnum):
    """Processing depth of a commit during impact analysis."""

    FULL = 1  # individual analysis with full diff
    QUICK = 2  # batched analysis, message and filenames only
    SKIPPED = 3  # never sent to the model

    @classmethod
    def for_score(cls, score: int, tier1_min: int = 7, tier2_min: int = 4) -> "AnalysisTier":
        if score >= tier1_min:
            return cls.FULL
        if score >= tier2_min:
            return cls.QUICK
        return cls.SKIPPED


class AnalysisStrategy(str, Enum):
    """How commits are grouped for impact analysis."""

    BATCH = "batch"
    TIERED = "tiered"


TIER3_PLACEHOLDER_SUMMARY = "Low-importance change; no user-facing impact processed."


@dataclass(frozen=True)
class UserFacingChange:
    """Externally observable effect of a commit, as extracted by the model."""

    type: ChangeType
    description: str
    impact: ImpactLevel = ImpactLevel.MEDIUM
    scope: str | None = None
    audiences: tuple[Audience, ...] = ()
    components: tuple[str, ...] = ()
    breaking: bool = False
    deprecation: bool = False
    technical_detail: str | None = None
    migration_required: bool = False


@dataclass(frozen=True)
class PreparedCommit:
    """Commit ready to be sent to the analysis prompt."""

    sha: str
    title: str
    importance_score: int
    category: CommitCategory
    tier: AnalysisTier
    files_considered: tuple[str, ...]
    skipped_files: tuple[str, ...]
    truncated_diff_lines: int
    message: str
    diff: str | None = None  # None for quick analysis


@dataclass(frozen=True)
class CommitAnalysis:
    """Decoded analysis of one commit."""

    sha: str
    user_facing_changes: tuple[UserFacingChange, ...]
    analysis_summary: str | None = None


@dataclass(frozen=True)
class Stage2CommitResult:
    """Impact analysis outcome of one commit."""

    sha: str
    title: str
    importance_score: int
    category: CommitCategory
    tier: AnalysisTier
    files_considered: tuple[str, ...]
    skipped_files: tuple[str, ...]
    truncated_diff_lines: int
    analysis_summary: str | None = None
    user_facing_changes: tuple[UserFacingChange, ...] = ()
    release_note_line: str | None = None
    overall_impact: ImpactLevel | None = None
    migration_required: bool = False


_IMPACT_RANK = {ImpactLevel.LOW: 0, ImpactLevel.MEDIUM: 1, ImpactLevel.HIGH: 2}


def derive_overall_impact(changes: tuple[UserFacingChange, ...]) -> ImpactLevel | None:
    """Highest impact among the changes, or None when there are none."""
    if not changes:
        return None
    return max((change.impact for change in changes), key=_IMPACT_RANK.__getitem__)


@dataclass(frozen=True)
class ImpactAnalysisMetrics:
    """Counters of one impact analysis run."""

    total_commits: int = 0
    tier1: int = 0
    tier2: int = 0
    tier3: int = 0
    llm_calls: int = 0
    batched_calls: int = 0
    individual_calls: int = 0
    analyzed_commits: int = 0
    skipped_no_llm: int = 0
    decode_failures: int = 0


@dataclass(frozen=True)
class ImpactAnalysisResult:
    """Per-commit analysis results, in processing order."""

    strategy: AnalysisStrategy
    commits: tuple[Stage2CommitResult, ...]
    metrics: ImpactAnalysisMetrics
    logs: tuple[AuditLogEntry, ...] = ()


@dataclass(frozen=True)
class CategorySummaryMetrics:
    """Counters of one category summarization run."""

    total_commits: int
    lines_per_category: dict[CommitCategory, int]
    llm_calls: int
    total_bullets: int
    fallbacks_used: int


@dataclass(frozen=True)
class CategorySummaryResult:
    """Bullets per category plus the executive summary."""

    categories: dict[CommitCategory, tuple[str, ...]]
    executive_summary: tuple[str, ...]
    metrics: CategorySummaryMetrics
    logs: tuple[AuditLogEntry, ...] = ()

    @property
    def total_bullets(self) -> int:
        return sum(len(bullets) for bullets in self.categories.values())


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range covered by a release."""

    start: date | None = None
    end: date | None = None


@dataclass(frozen=True)
class ChangelogMetadata:
    """Release facts handed to the assembly prompt."""

    commit_count: int
    contributors: tuple[str, ...] = ()
    date_range: DateRange = field(default_factory=DateRange)
    version: str | None = None


@dataclass(frozen=True)
class ChangelogTitle:
    """Short structured title used in list views."""

    title: str
    date: str  # YYYY-MM-DD
    version_number: str | None = None


@dataclass(frozen=True)
class ChangelogDocument:
    """Terminal artifact of the pipeline."""

    markdown: str
    title: ChangelogTitle
    version: str | None = None
    release_date: str | None = None


@dataclass(frozen=True)
class AssemblyMetrics:
    """Counters of one assembly run."""

    llm_calls: int
    markdown_length: int
    used_envelope: bool
    title_fallback: bool


@dataclass(frozen=True)
class AssemblyResult:
    """Final document plus the assembly trail."""

    document: ChangelogDocument
    metrics: AssemblyMetrics
    logs: tuple[AuditLogEntry, ...] = ()
