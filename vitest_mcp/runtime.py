"""Collaborators shared by every tool call of one server instance."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import Configuration
from .core.coverage import ThresholdSource
from .core.project import ProjectContext, ProjectLocator
from .core.runner import ProcessRunner


@dataclass
class ToolRuntime:
    """
    Everything a handler needs, built once by the server.

    Only ``context`` changes during a session (through set_project_root).
    """
    config: Configuration = field(default_factory=Configuration)
    context: ProjectContext = field(default_factory=ProjectContext)
    runner: ProcessRunner | None = None
    locator: ProjectLocator | None = None
    threshold_source: ThresholdSource | None = None

    def __post_init__(self):
        if self.runner is None:
            self.runner = ProcessRunner(kill_grace_ms=self.config.safety.kill_grace_ms)
        if self.locator is None:
            self.locator = ProjectLocator(
                exclude_dirs=self.config.discovery.exclude_dirs,
                max_depth=self.config.discovery.max_depth,
                test_patterns=self.config.discovery.test_patterns,
            )
