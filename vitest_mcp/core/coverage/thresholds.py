"""Coverage thresholds: where they come from and how they are checked."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping, Protocol

from ...constants import COVERAGE_METRICS, VITEST_CONFIG_CANDIDATES
from .models import ThresholdEvaluation

logger = logging.getLogger(__name__)

Thresholds = dict[str, float]

# Human-readable metric names for violation messages
_METRIC_LABELS = {
    "lines": "Line",
    "functions": "Function",
    "branches": "Branch",
    "statements": "Statement",
}

_THRESHOLDS_BLOCK = re.compile(r"thresholds\s*:\s*\{([^}]+)\}")


class ThresholdSource(Protocol):
    """Anything that can report per-metric coverage thresholds for a project."""

    def get_thresholds(self, project_root: str) -> Thresholds | None:
        """Return configured thresholds, or None when none are configured."""
        ...


class ThresholdEvaluator:
    """Compare coverage percentages with the configured thresholds."""

    def evaluate(
        self,
        coverage: Mapping[str, float],
        thresholds: Mapping[str, float],
    ) -> ThresholdEvaluation:
        """
        Check every configured metric.

        Metrics without a threshold are never checked. ``meets`` is true iff
        every configured metric is at or above its threshold.
        """
        violations = []
        for metric in COVERAGE_METRICS:
            required = thresholds.get(metric)
            if required is None:
                continue
            actual = coverage.get(metric, 0)
            if actual < required:
                violations.append(
                    f"{_METRIC_LABELS[metric]} coverage ({_fmt(actual)}%) "
                    f"is below threshold ({_fmt(required)}%)"
                )

        return ThresholdEvaluation(meets=not violations, violations=violations)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# =============================================================================
# Threshold sources
# =============================================================================

class VitestConfigThresholdSource:
    """Read ``coverage.thresholds`` out of the project's vitest/vite config file."""

    def __init__(self, candidates: tuple[str, ...] = VITEST_CONFIG_CANDIDATES):
        self.candidates = candidates

    def find_config(self, project_root: str) -> Path | None:
        """First existing config file in priority order."""
        for name in self.candidates:
            path = Path(project_root) / name
            if path.is_file():
                return path
        return None

    def get_thresholds(self, project_root: str) -> Thresholds | None:
        try:
            config_path = self.find_config(project_root)
            if config_path is None:
                return None
            content = config_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug("Could not read vitest config thresholds: %s", e)
            return None

        return parse_thresholds_block(content)


def parse_thresholds_block(content: str) -> Thresholds | None:
    """Extract ``thresholds: { lines: 80, ... }`` integer values between 0 and 100."""

    match = _THRESHOLDS_BLOCK.search(content)
    if not match:
        return None

    block = match.group(1)
    thresholds: Thresholds = {}
    for metric in COVERAGE_METRICS:
        metric_match = re.search(rf"\b{metric}\s*:\s*(\d+)", block)
        if metric_match:
            value = int(metric_match.group(1))
            if 0 <= value <= 100:
                thresholds[metric] = value

    return thresholds or None


class ConfiguredThresholdSource:
    """Thresholds supplied by the server's own configuration."""

    def __init__(
        self,
        thresholds: Mapping[str, float] | None = None,
        threshold: float | None = None,
    ):
        self._thresholds = dict(thresholds or {})
        self._threshold = threshold

    def get_thresholds(self, project_root: str) -> Thresholds | None:
        configured = {
            metric: value
            for metric, value in self._thresholds.items()
            if metric in COVERAGE_METRICS and value is not None
        }
        if configured:
            return configured
        if self._threshold is not None and self._threshold > 0:
            return {metric: self._threshold for metric in COVERAGE_METRICS}
        return None


class ChainedThresholdSource:
    """Ask each source in turn; the first non-None answer wins."""

    def __init__(self, *sources: ThresholdSource):
        self.sources = sources

    def get_thresholds(self, project_root: str) -> Thresholds | None:
        for source in self.sources:
            thresholds = source.get_thresholds(project_root)
            if thresholds is not None:
                return thresholds
        return None
