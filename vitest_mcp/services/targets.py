"""Target validation shared by run_tests and analyze_coverage."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.project import PROJECT_ROOT_NOT_SET_MESSAGE, ProjectContext, ProjectLocator
from .base import ErrorCode, ServiceResult


@dataclass(frozen=True)
class ResolvedTarget:
    """A validated target inside the project root."""
    project_root: str
    absolute_path: str
    relative_path: str
    is_directory: bool


class TargetResolver:
    """Check a user-supplied target before any process is spawned."""

    def __init__(
        self,
        context: ProjectContext,
        locator: ProjectLocator,
        allow_root_execution: bool = False,
    ):
        self.context = context
        self.locator = locator
        self.allow_root_execution = allow_root_execution

    def resolve(self, target: str | None, *, for_coverage: bool = False) -> ServiceResult[ResolvedTarget]:
        """
        Validate a target path.

        Rejects empty targets, a missing project root, coverage targets that
        are test files, paths that do not exist, paths outside the project
        root, and the project root itself.
        """
        if not isinstance(target, str) or not target.strip():
            return ServiceResult.fail(
                ErrorCode.MISSING_INPUT,
                "Target parameter is required. Specify a file or directory to run, "
                "e.g. './src/utils' or './src/components/Button.test.ts'.",
            )
        target = target.strip()

        if not self.context.has_project_root():
            return ServiceResult.fail(ErrorCode.PROJECT_ROOT_NOT_SET, PROJECT_ROOT_NOT_SET_MESSAGE)
        project_root = self.context.get_project_root()

        if for_coverage and self.locator.is_test_path(target):
            return ServiceResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Coverage analysis should target source files, not test files. "
                f"Point analyze_coverage at the code under test instead of '{target}'.",
            )

        absolute_path = self.locator.resolve(project_root, target)
        if not self.locator.exists(absolute_path):
            return ServiceResult.fail(
                ErrorCode.FILE_NOT_FOUND,
                f"Target does not exist: {target}",
                {"resolvedPath": absolute_path},
            )

        if not self.locator.is_within(absolute_path, project_root):
            return ServiceResult.fail(
                ErrorCode.VALIDATION_ERROR,
                f"Target is outside the project root: {target}",
                {"projectRoot": project_root},
            )

        relative_path = self.locator.relative_to(absolute_path, project_root)
        if relative_path == "." and not self.allow_root_execution:
            return ServiceResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Cannot run against the entire project root. "
                "Specify a file or subdirectory to keep the output focused.",
            )

        return ServiceResult.ok(ResolvedTarget(
            project_root=project_root,
            absolute_path=absolute_path,
            relative_path=relative_path,
            is_directory=self.locator.is_directory(absolute_path),
        ))
