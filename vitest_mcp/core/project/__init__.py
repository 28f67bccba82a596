"""Project module - project root context, filesystem lookups and installed tooling."""

from .context import (
    PROJECT_ROOT_NOT_SET_MESSAGE,
    ProjectContext,
    ProjectInfo,
    ProjectRootError,
    is_absolute,
)
from .locator import ProjectLocator, TestFile, classify_test_type
from .versions import VersionCheck, check_versions, meets_minimum, parse_version

__all__ = [
    "PROJECT_ROOT_NOT_SET_MESSAGE",
    "ProjectContext",
    "ProjectInfo",
    "ProjectRootError",
    "is_absolute",
    "ProjectLocator",
    "TestFile",
    "classify_test_type",
    "VersionCheck",
    "check_versions",
    "meets_minimum",
    "parse_version",
]
