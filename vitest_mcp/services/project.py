"""Project service: choose the project root and discover its test files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from ..config import Configuration
from ..core.project import (
    PROJECT_ROOT_NOT_SET_MESSAGE,
    ProjectContext,
    ProjectInfo,
    ProjectLocator,
    ProjectRootError,
    TestFile,
)
from .base import ErrorCode, ServiceResult

logger = logging.getLogger(__name__)


@dataclass
class TestListing:
    """Result of list_tests."""

    __test__ = False

    search_path: str
    project_root: str
    test_files: list[TestFile] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "testFiles": [test_file.to_dict() for test_file in self.test_files],
            "totalCount": len(self.test_files),
            "searchPath": self.search_path,
            "projectRoot": self.project_root,
        }


class ProjectService:
    """set_project_root and list_tests on top of a shared ProjectContext."""

    def __init__(
        self,
        config: Configuration,
        context: ProjectContext,
        locator: ProjectLocator | None = None,
    ):
        self.config = config
        self.context = context
        self.locator = locator or ProjectLocator(
            exclude_dirs=config.discovery.exclude_dirs,
            max_depth=config.discovery.max_depth,
            test_patterns=config.discovery.test_patterns,
        )

    def set_project_root(self, path: str | None) -> ServiceResult[ProjectInfo]:
        if not isinstance(path, str) or not path.strip():
            return ServiceResult.fail(ErrorCode.MISSING_INPUT, "Path parameter is required")
        requested = path.strip()

        allowed = self.config.safety.allowed_paths
        if allowed and not _is_allowed(requested, allowed):
            return ServiceResult.fail(
                ErrorCode.ACCESS_DENIED,
                f'Access denied: Path "{requested}" is outside allowed directories. '
                f"Allowed paths: {', '.join(allowed)}. "
                "Configure allowedPaths in your .vitest-mcp.json to change this restriction.",
            )

        try:
            info = self.context.set_project_root(requested)
        except ProjectRootError as e:
            return ServiceResult.fail(ErrorCode.VALIDATION_ERROR, str(e))

        return ServiceResult.ok(info)

    def list_tests(self, path: str | None = None) -> ServiceResult[TestListing]:
        if not self.context.has_project_root():
            return ServiceResult.fail(ErrorCode.PROJECT_ROOT_NOT_SET, PROJECT_ROOT_NOT_SET_MESSAGE)
        project_root = self.context.get_project_root()

        search_path = self.locator.resolve(project_root, path) if path else project_root
        if not self.locator.exists(search_path):
            return ServiceResult.fail(ErrorCode.FILE_NOT_FOUND, f"Search path does not exist: {search_path}")
        if not self.locator.is_directory(search_path):
            return ServiceResult.fail(ErrorCode.VALIDATION_ERROR, f"Search path is not a directory: {search_path}")

        test_files = self.locator.find_test_files(search_path)
        logger.debug("Found %d test files under %s", len(test_files), search_path)
        return ServiceResult.ok(TestListing(
            search_path=search_path,
            project_root=project_root,
            test_files=test_files,
        ))


def _is_allowed(requested: str, allowed_paths: tuple[str, ...]) -> bool:
    """Equal to or inside one of the allowed directories."""
    resolved = os.path.abspath(requested)
    for allowed in allowed_paths:
        allowed_root = os.path.abspath(allowed)
        if resolved == allowed_root or resolved.startswith(allowed_root.rstrip(os.sep) + os.sep):
            return True
    return False
