"""Service for filtering test and generated files out of commit diffs."""

import re
from pathlib import PurePosixPath


class FileFilterService:
    """Service for detecting test files and generated files."""

    # Path patterns that indicate test code
    TEST_PATH_PATTERNS: tuple[re.Pattern[str], ...] = (
        re.compile(r"\btest\b|\bspec\b"),
        re.compile(r"(^|/)__tests__/"),
        re.compile(r"(^|/)tests?/"),
        re.compile(r"\.(test|spec)\.[a-z0-9]+$"),
        re.compile(r"(^|/)test_[^/]*\.py$"),
        re.compile(r"_test\.(py|go)$"),
        re.compile(r"cypress"),
        re.compile(r"playwright"),
        re.compile(r"(jest|vitest)\.config"),
        re.compile(r"(^|/)(pytest\.ini|conftest\.py)$"),
    )

    # Filenames of dependency lockfiles
    LOCKFILE_NAMES: frozenset[str] = frozenset(
        {
            "package-lock.json",
            "yarn.lock",
            "pnpm-lock.yaml",
            "poetry.lock",
            "pipfile.lock",
            "cargo.lock",
            "gemfile.lock",
            "composer.lock",
            "go.sum",
            "uv.lock",
        }
    )

    # Extensions commonly associated with generated files
    GENERATED_EXTENSIONS: frozenset[str] = frozenset(
        {
            ".lock",
            ".map",
            ".pb",
            ".pyc",
            ".class",
            ".snap",
        }
    )

    # Directory patterns that hold build output or vendored code
    GENERATED_PATH_PATTERNS: tuple[re.Pattern[str], ...] = (
        re.compile(r"(^|/)node_modules/"),
        re.compile(r"(^|/)vendor/"),
        re.compile(r"(^|/)dist/"),
        re.compile(r"(^|/)build/"),
        re.compile(r"(^|/)__pycache__/"),
        re.compile(r"(^|/)\.next/"),
        re.compile(r"(^|/)\.nuxt/"),
    )

    # Name patterns that indicate generated files
    GENERATED_NAME_PATTERNS: tuple[re.Pattern[str], ...] = (
        re.compile(r"\.min\.(js|css)$"),
        re.compile(r"\.bundle\.js$"),
        re.compile(r"\.generated\."),
        re.compile(r"_pb2(_grpc)?\.py$"),
    )

    def is_test_file(self, file_path: str) -> bool:
        """
        Check if a file belongs to a test suite.

        Args:
            file_path: Path to the file, relative to the repository root

        Returns:
            True if the path matches a test-code heuristic, False otherwise
        """
        lower = file_path.lower()
        return any(pattern.search(lower) for pattern in self.TEST_PATH_PATTERNS)

    def is_generated_file(self, file_path: str) -> bool:
        """
        Check if a file is likely generated based on heuristics.

        Args:
            file_path: Path to the file, relative to the repository root

        Returns:
            True if the file is likely generated, False otherwise
        """
        lower = file_path.lower()
        path_obj = PurePosixPath(lower)

        if path_obj.name in self.LOCKFILE_NAMES:
            return True

        # Check extension
        if path_obj.suffix in self.GENERATED_EXTENSIONS:
            return True

        # Check if any directory of the path is build output
        for pattern in self.GENERATED_PATH_PATTERNS:
            if pattern.search(lower):
                return True

        # Check filename for generated name patterns
        for pattern in self.GENERATED_NAME_PATTERNS:
            if pattern.search(path_obj.name):
                return True

        return False
