"""The project root a server session operates on."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath

from ...constants import PROJECT_MARKERS

logger = logging.getLogger(__name__)

PROJECT_ROOT_NOT_SET_MESSAGE = (
    "Project root has not been set. Please use the set_project_root tool first "
    "to specify which repository to work with."
)


class ProjectRootError(ValueError):
    """A path cannot be used as the project root."""


@dataclass(frozen=True)
class ProjectInfo:
    path: str
    name: str

    def to_dict(self) -> dict:
        return {"path": self.path, "name": self.name}


class ProjectContext:
    """
    Holds the validated project root for one server instance.

    Created by the server and passed to every tool call; tools only read it,
    except set_project_root.
    """

    def __init__(self, project_root: str | None = None):
        self._project_root: str | None = None
        if project_root:
            self.set_project_root(project_root)

    def set_project_root(self, path: str) -> ProjectInfo:
        """
        Validate and store a new project root.

        Raises:
            ProjectRootError: If the path is relative, missing, not a directory,
                or has neither package.json nor a vitest config
        """
        if not is_absolute(path):
            raise ProjectRootError(
                "Project root must be an absolute path "
                "(starting with / on Unix or drive letter on Windows)"
            )

        root = Path(path)
        if not root.exists():
            raise ProjectRootError(f"Directory does not exist: {path}")
        if not root.is_dir():
            raise ProjectRootError(f"Path is not a directory: {path}")
        if not any((root / marker).is_file() for marker in PROJECT_MARKERS):
            raise ProjectRootError(
                "Directory does not appear to be a valid project "
                f"(no package.json or vitest.config found): {path}"
            )

        self._project_root = str(root.resolve())
        logger.info("Project root set to %s", self._project_root)
        return self.project_info()

    def get_project_root(self) -> str:
        """The current root; raises ProjectRootError when none is set."""
        if self._project_root is None:
            raise ProjectRootError(PROJECT_ROOT_NOT_SET_MESSAGE)
        return self._project_root

    def has_project_root(self) -> bool:
        return self._project_root is not None

    def project_info(self) -> ProjectInfo | None:
        if self._project_root is None:
            return None
        return ProjectInfo(path=self._project_root, name=Path(self._project_root).name or "unknown")

    def reset(self) -> None:
        self._project_root = None


def is_absolute(path: str) -> bool:
    """POSIX absolute or a Windows drive path."""
    return path.startswith("/") or PureWindowsPath(path).is_absolute()
