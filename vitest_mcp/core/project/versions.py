"""Installed vitest and coverage provider versions, checked before a coverage run."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ...constants import (
    COVERAGE_PROVIDER_MINIMUM_VERSION,
    COVERAGE_PROVIDERS,
    VITEST_MINIMUM_VERSION,
    VITEST_PACKAGE,
    VITEST_RECOMMENDED_VERSION,
)
from .locator import ProjectLocator

Version = tuple[int, int, int]


@dataclass
class VersionCheck:
    """Installed versions plus blocking errors and advisory warnings."""
    vitest_version: str | None = None
    coverage_provider: str | None = None
    coverage_provider_version: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def report(self) -> str:
        """Human-readable summary used in error messages."""
        lines = [f"Vitest: {'v' + self.vitest_version if self.vitest_version else 'not found'}"]
        if self.coverage_provider_version:
            lines.append(f"Coverage provider: {self.coverage_provider} v{self.coverage_provider_version}")
        else:
            lines.append("Coverage provider: not found")
        lines.extend(f"Error: {error}" for error in self.errors)
        lines.extend(f"Warning: {warning}" for warning in self.warnings)
        return "\n".join(lines)


def parse_version(text: str) -> Version:
    """``v1.2.3-beta.1`` -> ``(1, 2, 3)``; missing or non-numeric parts count as 0."""
    core = re.split(r"[-+]", text.strip().lstrip("v"), maxsplit=1)[0]
    parts = []
    for piece in core.split(".")[:3]:
        match = re.match(r"\d+", piece)
        parts.append(int(match.group()) if match else 0)
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def meets_minimum(version: str, minimum: str) -> bool:
    return parse_version(version) >= parse_version(minimum)


def check_versions(locator: ProjectLocator, project_root: str) -> VersionCheck:
    """
    Check the project's installed vitest and coverage provider.

    A missing or too old vitest is an error. An old (but usable) vitest, a
    missing coverage provider or an old one are warnings.
    """
    check = VersionCheck(vitest_version=locator.package_version(project_root, VITEST_PACKAGE))

    for provider in COVERAGE_PROVIDERS:
        version = locator.package_version(project_root, provider)
        if version:
            check.coverage_provider = provider
            check.coverage_provider_version = version
            break

    if check.vitest_version is None:
        check.errors.append(
            "Vitest not found in node_modules. Install it with `npm install -D vitest`."
        )
    elif not meets_minimum(check.vitest_version, VITEST_MINIMUM_VERSION):
        check.errors.append(
            f"Vitest version {check.vitest_version} is below the minimum required "
            f"{VITEST_MINIMUM_VERSION}. Please upgrade."
        )
    elif not meets_minimum(check.vitest_version, VITEST_RECOMMENDED_VERSION):
        check.warnings.append(
            f"Vitest version {check.vitest_version} works but {VITEST_RECOMMENDED_VERSION}+ "
            "is recommended for full feature support."
        )

    if check.coverage_provider_version is None:
        check.warnings.append(
            f"No coverage provider found (install {' or '.join(COVERAGE_PROVIDERS)}). "
            "Coverage analysis will not work."
        )
    elif not meets_minimum(check.coverage_provider_version, COVERAGE_PROVIDER_MINIMUM_VERSION):
        check.warnings.append(
            f"Coverage provider version {check.coverage_provider_version} is below the recommended "
            f"{COVERAGE_PROVIDER_MINIMUM_VERSION}."
        )

    return check
