"""Services package.

Service classes and shared result types used by the MCP handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import (
    ErrorCode,
    ServiceError,
    ServiceResult,
)
from .coverage import CoverageAnalysisService, default_threshold_source
from .execution import Stage, TestExecutionService, determine_format
from .project import ProjectService, TestListing
from .targets import ResolvedTarget, TargetResolver

if TYPE_CHECKING:
    from ..runtime import ToolRuntime

__all__ = [
    # Base
    "ServiceResult",
    "ServiceError",
    "ErrorCode",
    # Targets
    "ResolvedTarget",
    "TargetResolver",
    # Services
    "TestExecutionService",
    "CoverageAnalysisService",
    "ProjectService",
    "TestListing",
    "Stage",
    "determine_format",
    "default_threshold_source",
    # Factories
    "create_execution_service",
    "create_coverage_service",
    "create_project_service",
]


# =============================================================================
# Convenience factory functions
# =============================================================================

def create_execution_service(runtime: ToolRuntime) -> TestExecutionService:
    """Factory for TestExecutionService bound to the runtime's collaborators."""

    return TestExecutionService(
        config=runtime.config,
        context=runtime.context,
        runner=runtime.runner,
        locator=runtime.locator,
    )


def create_coverage_service(runtime: ToolRuntime) -> CoverageAnalysisService:
    """Factory for CoverageAnalysisService (thresholds from the runtime when set)."""

    return CoverageAnalysisService(
        config=runtime.config,
        context=runtime.context,
        runner=runtime.runner,
        locator=runtime.locator,
        threshold_source=runtime.threshold_source,
    )


def create_project_service(runtime: ToolRuntime) -> ProjectService:
    """Factory for ProjectService."""

    return ProjectService(
        config=runtime.config,
        context=runtime.context,
        locator=runtime.locator,
    )
