#!/usr/bin/env python3
"""
Script to generate a user-facing changelog from selected GitHub commits:
- Repository (OWNER/REPO)
- Commit SHAs (positional, and/or --shas-file with one SHA per line)
- --version: Optional version label
- --since / --until: Optional release date range (YYYY-MM-DD)
- --output: Optional file to write the Markdown to (default: print it)
- --job-dir: Directory of the job files (default: ./.changelog-jobs)
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import date
from pathlib import Path

from changelog_ticker.config import load_config, load_env_file
from changelog_ticker.errors import ChangelogTickerError
from changelog_ticker.git.domain.value_objects import RepositoryCoordinates
from changelog_ticker.jobs.domain.entities import JobRequest, JobStatus
from changelog_ticker.jobs.repositories.implementations import JsonFileJobStore
from changelog_ticker.jobs.services.pipeline_orchestrator import PipelineOrchestrator
from changelog_ticker.summarization.domain.value_objects import DateRange
from changelog_ticker.summarization.repositories.factory import create_llm_agent
from changelog_ticker.utils.logging import configure_logging


def read_shas_file(path: Path) -> list[str]:
    """Read one SHA per line, ignoring blank lines and # comments."""
    shas: list[str] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            value = line.split("#", 1)[0].strip()
            if value:
                shas.append(value)
    return shas


def parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a user-facing changelog from selected GitHub commits "
        "using AI-powered analysis"
    )
    parser.add_argument(
        "repository",
        type=str,
        help="GitHub repository as OWNER/REPO",
    )
    parser.add_argument(
        "shas",
        type=str,
        nargs="*",
        help="Full 40-character commit SHAs to include",
    )
    parser.add_argument(
        "--shas-file",
        type=Path,
        default=None,
        help="File with one commit SHA per line",
    )
    parser.add_argument(
        "--version",
        type=str,
        default=None,
        help="Version label of the release",
    )
    parser.add_argument(
        "--since",
        type=parse_date,
        default=None,
        help="Start of the release date range (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--until",
        type=parse_date,
        default=None,
        help="End of the release date range (YYYY-MM-DD), used as the release date",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the changelog Markdown to this file instead of printing it",
    )
    parser.add_argument(
        "--job-dir",
        type=Path,
        default=Path("./.changelog-jobs"),
        help="Directory holding job files (default: ./.changelog-jobs)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main() -> None:
    """Main function to parse arguments, run the pipeline and output the changelog."""
    args = build_parser().parse_args()
    configure_logging(getattr(logging, args.log_level))

    selected = list(args.shas)
    if args.shas_file is not None:
        if not args.shas_file.exists():
            print(f"✗ SHAs file does not exist: {args.shas_file}", file=sys.stderr)
            sys.exit(1)
        selected.extend(read_shas_file(args.shas_file))

    if not selected:
        print("✗ Error: provide commit SHAs or --shas-file", file=sys.stderr)
        sys.exit(1)

    try:
        repository = RepositoryCoordinates.parse(args.repository)
    except ValueError as e:
        print(f"✗ Validation failed: {e}", file=sys.stderr)
        sys.exit(1)

    load_env_file()
    github_token = os.getenv("GITHUB_TOKEN")
    if not github_token:
        print("\n✗ Configuration error: GITHUB_TOKEN is not set", file=sys.stderr)
        print("  Hint: Set GITHUB_TOKEN in .env file or environment", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config()
        text_generator = create_llm_agent()
    except ChangelogTickerError as e:
        print(f"\n✗ Configuration error: {e.message}", file=sys.stderr)
        if e.suggestion:
            print(f"  Hint: {e.suggestion}", file=sys.stderr)
        sys.exit(1)

    job_store = JsonFileJobStore(args.job_dir)
    job = job_store.create_job(
        JobRequest(
            owner=repository.owner,
            repo=repository.name,
            selected_commits=tuple(selected),
            date_range=DateRange(start=args.since, end=args.until),
            version=args.version,
        )
    )
    print(f"✓ Job {job.id} created for {repository.full_name} ({len(selected)} commits)")

    orchestrator = PipelineOrchestrator(
        job_store=job_store,
        text_generator=text_generator,
        config=config,
        github_token=github_token,
    )

    print("\n📝 Generating changelog...")
    job = asyncio.run(orchestrator.process_job(job.id))

    if job.status is not JobStatus.COMPLETED or job.artifact is None:
        print(f"\n✗ Changelog generation failed: {job.error_message}", file=sys.stderr)
        print(f"  Job log: {job_store.path_for(job.id)}", file=sys.stderr)
        sys.exit(1)

    document = job.artifact
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(document.markdown + "\n", encoding="utf-8")
        print(f"\n✓ Changelog '{document.title.title}' written to {args.output}")
        return

    print("=" * 80)
    print(document.title.title.upper())
    print("=" * 80)
    print(document.markdown or "(no user-facing changes)")
    print("=" * 80)
    print("\n✓ Changelog generated successfully!")


if __name__ == "__main__":
    main()
