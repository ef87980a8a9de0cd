"""Prompt builders for every model call of the pipeline."""

import json
from typing import Any

from changelog_ticker.git.domain.value_objects import CommitCategory
from changelog_ticker.summarization.domain.value_objects import (
    ChangelogMetadata,
    CommitAnalysis,
    PreparedCommit,
)

ANALYSIS_SCHEMA = {
    "commits": [
        {
            "sha": "string",
            "analysis_summary": "short string",
            "user_facing_changes": [
                {
                    "type": "feature|fix|breaking|performance|security|docs|other",
                    "scope": "optional string",
                    "description": "plain English, concise",
                    "impact": "high|medium|low",
                    "audiences": ["end_user|developer|admin|api_client"],
                    "components": ["string"],
                    "breaking": "boolean",
                    "deprecation": "boolean",
                }
            ],
        }
    ]
}

ANALYSIS_FALLBACK_SCHEMA = {
    "commits": [
        {
            "sha": "string",
            "impact": "high|medium|low",
            "category": "feature|fix|breaking|performance|security|docs|other",
            "user_facing_change": "Clear, concise description",
            "technical_detail": "Optional context",
            "migration_required": False,
        }
    ]
}

WRITER_SCHEMA = {"commits": [{"sha": "string", "release_note_line": "string, one sentence"}]}


def build_analysis_system_prompt() -> str:
    return "\n".join(
        [
            "You are a senior release-notes analyst.",
            "Your job: infer USER-FACING impact. Ignore internal refactors, renames, "
            "formatting, CI, tests, build, and code style only changes.",
            "Focus on: new features, bug fixes, breaking changes, security, performance, "
            "and public API or UI changes.",
            "If unsure, be conservative and exclude it.",
            "Output STRICT JSON only. No prose.",
            "If input includes multiple commits, return an array under commits.",
            "Preferred schema includes user_facing_changes array; acceptable fallback "
            "schema uses a single user_facing_change string per commit.",
        ]
    )


def build_analysis_user_prompt(commits: list[PreparedCommit], quick: bool) -> str:
    """
    Build the analysis prompt for a batch of prepared commits.

    Quick prompts carry the message and filenames only, never a diff.
    """
    compact: list[dict[str, Any]] = []
    for commit in commits:
        entry: dict[str, Any] = {
            "sha": commit.sha,
            "title": commit.title,
            "importance_score": commit.importance_score,
            "category": commit.category.value,
            "tier": int(commit.tier),
            "files_considered": list(commit.files_considered),
            "skipped_files": list(commit.skipped_files),
        }
        if not quick:
            entry["diff"] = commit.diff or ""
        entry["message"] = commit.message
        compact.append(entry)

    return "\n\n".join(
        [
            "Analyze the following commits and extract ONLY user-facing impact.",
            "- Ignore internal refactoring, variable renames, comments, code style, "
            "tests (unless new test category), CI/build scripts.\n"
            "- Prioritize public API changes and UI/behavior changes.\n"
            "- Assume patches may be truncated.",
            "Return JSON with this schema:",
            json.dumps(ANALYSIS_SCHEMA),
            "Fallback schema also accepted if simpler:",
            json.dumps(ANALYSIS_FALLBACK_SCHEMA),
            "Commits:",
            json.dumps({"commits": compact}),
        ]
    )


def build_writer_system_prompt() -> str:
    return "\n".join(
        [
            "You are a technical writer for release notes.",
            "Write crisp, user-facing one-liners in active voice.",
            "Avoid code terms; use product language.",
            "No punctuation at the end. No mentions of PR/commit numbers.",
            "Output STRICT JSON only.",
            "If multiple changes exist, choose the most impactful for the line.",
        ]
    )


def build_writer_user_prompt(analyses: list[CommitAnalysis]) -> str:
    payload = {
        "commits": [
            {
                "sha": analysis.sha,
                "analysis_summary": analysis.analysis_summary,
                "user_facing_changes": [
                    {
                        "type": change.type.value,
                        "scope": change.scope,
                        "description": change.description,
                        "impact": change.impact.value,
                        "breaking": change.breaking,
                    }
                    for change in analysis.user_facing_changes
                ],
            }
            for analysis in analyses
        ]
    }
    return "\n\n".join(
        [
            "Create a single release-note line per commit based on the extracted "
            "user-facing changes.",
            "Prefer the most important change if multiple exist. Keep it under 16 words.",
            "Return JSON with this schema:",
            json.dumps(WRITER_SCHEMA),
            json.dumps(payload),
        ]
    )


def build_category_system_prompt() -> str:
    return "\n".join(
        [
            "You are a technical writer creating a changelog for developers.",
            "Summarize related changes into clear, actionable bullet points.",
            "Use active voice and present tense. Start with impact, then context.",
            "Include specific names (APIs, components) when relevant.",
            "Return STRICT JSON only as: { bullets: string[] }.",
        ]
    )


def build_category_user_prompt(
    category: CommitCategory, changes: list[str], max_bullets: int
) -> str:
    return "\n".join(
        [
            f"CATEGORY: {category.value}",
            "CHANGES:",
            *(f"- {change}" for change in changes),
            "RULES:",
            "1. Combine similar changes into single points",
            "2. Use active voice and present tense",
            "3. Start with the impact, then provide context",
            "4. Include specific names (APIs, components, functions) when relevant",
            f"5. Max {max_bullets} bullet points",
            "OUTPUT: JSON { bullets: string[] }",
        ]
    )


def build_executive_system_prompt(max_sentences: int) -> str:
    return (
        "You are a release manager. Craft a short executive summary "
        f"(2-{max_sentences} sentences) highlighting the most important changes "
        "for developers."
    )


def build_executive_user_prompt(categories: dict[CommitCategory, tuple[str, ...]]) -> str:
    return "\n\n".join(
        [
            "Here are categorized changelog bullet points.",
            json.dumps({category.value: list(bullets) for category, bullets in categories.items()}),
            'Return STRICT JSON: { "executive_summary": ["sentence", ...] }',
        ]
    )


def build_assembly_system_prompt() -> str:
    return "\n".join(
        [
            "You are a product-focused technical writer creating a public changelog for "
            "end users and developers who use this software.",
            "Focus on user-facing impact and value; never describe internal "
            "implementation details.",
            "Follow the critical rules provided in the user prompt exactly.",
            "Return your response as a JSON object with 'markdown' and 'title' fields only.",
            "Do not include any title or release header in the 'markdown'. The title is "
            "returned separately and must not appear in the markdown body.",
        ]
    )


CHANGELOG_STRUCTURE = "\n".join(
    [
        "Start directly with the sections below. Do NOT include any top-level document "
        "title, release heading, version, or date in the markdown.",
        "### What's New",
        "[2-3 sentences highlighting the most impactful changes from a user's perspective]",
        "",
        "### New Features",
        "[Focus on capabilities users gain, not how they were built]",
        "",
        "### Fixed Issues",
        "[Describe problems users experienced that are now resolved]",
        "",
        "### Performance Improvements",
        "[Only mention improvements users will notice]",
        "",
        "### Important Changes",
        "[Cover breaking changes, security updates, or required follow-up actions]",
        "",
        "### Platform-Specific Updates",
        "[Include only if there are platform-specific notes such as Web, iOS, Android] "
        "with platform name in the heading and then paragraph",
    ]
)

CRITICAL_RULES = "\n".join(
    [
        "CRITICAL RULES - NEVER VIOLATE THESE:",
        "1. NEVER mention internal file names, class names, or function names",
        "2. NEVER describe how something was implemented",
        "3. NEVER reveal database structures, API internals, or system design",
        "4. NEVER use phrases like 'refactored', 'migrated', 'restructured'",
        "5. NEVER mention specific technologies used internally",
        "6. FOCUS ONLY on what users can see, touch, or experience differently",
        "7. Do NOT include any top-level document title or release header in the markdown.",
        "8. Do NOT include version numbers or dates anywhere in the markdown.",
    ]
)


def build_assembly_user_prompt(
    categories: dict[CommitCategory, tuple[str, ...]],
    executive_summary: tuple[str, ...],
    metadata: ChangelogMetadata,
) -> str:
    date_range = metadata.date_range
    payload = {
        "features": list(categories.get(CommitCategory.FEATURES, ())),
        "fixes": list(categories.get(CommitCategory.FIXES, ())),
        "improvements": list(categories.get(CommitCategory.OTHER, ())),
        "breaking_changes": list(categories.get(CommitCategory.BREAKING, ())),
        "performance": list(categories.get(CommitCategory.PERFORMANCE, ())),
        "security": list(categories.get(CommitCategory.SECURITY, ())),
        "executive_summary": list(executive_summary),
        "metadata": {
            "commit_count": metadata.commit_count,
            "contributors": list(metadata.contributors),
            "date_range": {
                "from": date_range.start.isoformat() if date_range.start else None,
                "to": date_range.end.isoformat() if date_range.end else None,
            },
            "version": metadata.version,
        },
    }

    return "\n\n".join(
        [
            "TASK: Create a public changelog that tells users what changed from their "
            "perspective. Don't try to be too detailed. Keep it pretty high level and "
            "professional.",
            CRITICAL_RULES,
            "IMPORTANT: Return your response as a JSON object with two fields:\n"
            "- 'markdown': The complete changelog in Markdown format\n"
            "- 'title': A concise title for this changelog as a string",
            "INPUT (JSON):",
            json.dumps(payload, indent=2),
            "CHANGELOG STRUCTURE:",
            CHANGELOG_STRUCTURE,
            "\n".join(
                [
                    "WRITING GUIDANCE:",
                    "- Use the provided summaries only; do not invent new changes.",
                    "- Write in second person, focusing on user benefits and outcomes.",
                    "- If a section has no content, omit the header entirely.",
                    "- Begin the markdown with the first section heading (e.g., "
                    "'### What's New') rather than a document title.",
                    "- Integrate executive summary lines into the 'What's New' section.",
                    "- Keep bullets concise, user-focused, and free of prohibited terminology.",
                ]
            ),
            "\n".join(
                [
                    "TITLE REQUIREMENTS:",
                    "- The title should be concise (5-10 words maximum)",
                    "- It should capture the main theme of changes in this release",
                    "- Do not repeat the title inside the 'markdown' content.",
                ]
            ),
        ]
    )
