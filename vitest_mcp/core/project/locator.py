"""Filesystem queries about the project: paths, test files, installed tooling."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ...constants import (
    DISCOVERY_EXCLUDE_DIRS,
    DISCOVERY_MAX_DEPTH,
    DISCOVERY_TEST_PATTERNS,
    TEST_DIRECTORY_NAMES,
    TEST_FILE_MARKERS,
)
from ..globs import matches_any

logger = logging.getLogger(__name__)

TestType = Literal["unit", "integration", "e2e", "unknown"]


@dataclass(frozen=True)
class TestFile:
    """A discovered test file."""

    __test__ = False

    path: str
    relative_path: str
    type: TestType

    def to_dict(self) -> dict:
        return {"path": self.path, "relativePath": self.relative_path, "type": self.type}


class ProjectLocator:
    """Resolve target paths and discover test files under a project root."""

    def __init__(
        self,
        exclude_dirs: tuple[str, ...] = DISCOVERY_EXCLUDE_DIRS,
        max_depth: int = DISCOVERY_MAX_DEPTH,
        test_patterns: tuple[str, ...] = DISCOVERY_TEST_PATTERNS,
    ):
        self.exclude_dirs = frozenset(exclude_dirs)
        self.max_depth = max_depth
        self.test_patterns = tuple(test_patterns)

    # =========================================================================
    # Paths
    # =========================================================================

    def resolve(self, root: str, path: str) -> str:
        """Absolute, normalized path; relative paths are taken from ``root``."""
        return os.path.normpath(os.path.join(root, os.path.expanduser(path)))

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_within(self, path: str, root: str) -> bool:
        """True when ``path`` is ``root`` or lies below it."""
        path = os.path.normcase(os.path.realpath(path))
        root = os.path.normcase(os.path.realpath(root))
        return path == root or path.startswith(root.rstrip(os.sep) + os.sep)

    def relative_to(self, path: str, root: str) -> str:
        """POSIX-style path relative to ``root``."""
        return Path(os.path.relpath(path, root)).as_posix()

    def is_test_path(self, path: str) -> bool:
        """Test-file naming conventions, or a file inside a ``tests``/``__tests__`` directory."""
        normalized = path.replace("\\", "/")
        if any(marker in normalized for marker in TEST_FILE_MARKERS):
            return True
        directories = [part for part in normalized.split("/")[:-1] if part]
        return any(part in TEST_DIRECTORY_NAMES for part in directories)

    # =========================================================================
    # Discovery
    # =========================================================================

    def find_test_files(self, search_path: str) -> list[TestFile]:
        """Walk ``search_path`` and return its test files sorted by relative path."""

        root = Path(search_path).resolve()
        found: list[TestFile] = []

        for directory, dir_names, file_names in os.walk(root, onerror=self._log_walk_error):
            depth = len(Path(directory).relative_to(root).parts)
            if depth >= self.max_depth:
                dir_names[:] = []
            else:
                dir_names[:] = sorted(name for name in dir_names if name not in self.exclude_dirs)

            for name in file_names:
                full_path = Path(directory) / name
                relative = full_path.relative_to(root).as_posix()
                if self.is_test_file(relative):
                    found.append(TestFile(
                        path=str(full_path),
                        relative_path=relative,
                        type=classify_test_type(relative),
                    ))

        return sorted(found, key=lambda test_file: test_file.relative_path)

    def is_test_file(self, relative_path: str) -> bool:
        return matches_any(relative_path, self.test_patterns)

    def _log_walk_error(self, error: OSError) -> None:
        logger.debug("Skipping unreadable directory: %s", error)

    # =========================================================================
    # Tooling
    # =========================================================================

    def package_version(self, project_root: str, package: str) -> str | None:
        """Version of ``package`` installed under the project's node_modules, if readable."""
        manifest = Path(project_root, "node_modules", *package.split("/"), "package.json")
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("No readable manifest for %s: %s", package, e)
            return None
        version = data.get("version") if isinstance(data, dict) else None
        return version if isinstance(version, str) and version.strip() else None


def classify_test_type(relative_path: str) -> TestType:
    """Classify by path: e2e, integration, unit, or unknown."""
    if "e2e" in relative_path:
        return "e2e"
    if "integration" in relative_path:
        return "integration"
    if "unit" in relative_path or "__tests__" in relative_path:
        return "unit"
    return "unknown"
