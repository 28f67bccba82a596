"""
Server configuration.

Layers are merged in this order, later ones winning:
defaults < JSON config file < environment variables < command-line flags.

The config file uses the camelCase layout below; any subset may be given.

    {
      "testDefaults": {"format": "summary", "timeout": 30000},
      "coverageDefaults": {
        "format": "summary",
        "exclude": ["**/*.stories.*"],
        "thresholds": {"lines": 80, "branches": 70},
        "threshold": 80
      },
      "discovery": {"testPatterns": [...], "excludePatterns": [...], "maxDepth": 10},
      "server": {"verbose": false, "allowRootExecution": false, "workingDirectory": "."},
      "safety": {"allowedPaths": ["/home/me/projects"]},
      "runner": {"command": ["npx", "vitest", "run"]}
    }
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_FILE_NAMES,
    COVERAGE_METRICS,
    COVERAGE_TIMEOUT_MULTIPLIER,
    DEFAULT_COVERAGE_EXCLUDE,
    DEFAULT_RUNNER_COMMAND,
    DISCOVERY_EXCLUDE_DIRS,
    DISCOVERY_MAX_DEPTH,
    DISCOVERY_TEST_PATTERNS,
    HOME_CONFIG_FILES,
    KILL_GRACE_MS,
    TEST_TIMEOUT_MS,
)
from .core.results import VALID_FORMATS

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """A configuration file could not be read or parsed."""


# =============================================================================
# Settings
# =============================================================================

@dataclass(frozen=True)
class TestDefaults:
    __test__ = False

    format: str = "summary"
    timeout_ms: int = TEST_TIMEOUT_MS


@dataclass(frozen=True)
class CoverageDefaults:
    format: str = "summary"
    exclude: tuple[str, ...] = DEFAULT_COVERAGE_EXCLUDE
    thresholds: dict[str, float] | None = None
    threshold: float | None = None
    timeout_multiplier: int = COVERAGE_TIMEOUT_MULTIPLIER

    def effective_thresholds(self) -> dict[str, float] | None:
        """Per-metric thresholds, else the single value spread over every metric."""
        if self.thresholds:
            return dict(self.thresholds)
        if self.threshold is not None and self.threshold > 0:
            return {metric: self.threshold for metric in COVERAGE_METRICS}
        return None


@dataclass(frozen=True)
class DiscoverySettings:
    test_patterns: tuple[str, ...] = DISCOVERY_TEST_PATTERNS
    exclude_dirs: tuple[str, ...] = DISCOVERY_EXCLUDE_DIRS
    max_depth: int = DISCOVERY_MAX_DEPTH


@dataclass(frozen=True)
class ServerSettings:
    verbose: bool = False
    quiet: bool = False
    allow_root_execution: bool = False
    working_directory: str | None = None


@dataclass(frozen=True)
class SafetySettings:
    allowed_paths: tuple[str, ...] | None = None
    kill_grace_ms: int = KILL_GRACE_MS


@dataclass(frozen=True)
class RunnerSettings:
    command: tuple[str, ...] = DEFAULT_RUNNER_COMMAND


@dataclass(frozen=True)
class Configuration:
    """Resolved configuration, built once at startup and passed to every tool."""
    test_defaults: TestDefaults = field(default_factory=TestDefaults)
    coverage_defaults: CoverageDefaults = field(default_factory=CoverageDefaults)
    discovery: DiscoverySettings = field(default_factory=DiscoverySettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    safety: SafetySettings = field(default_factory=SafetySettings)
    runner: RunnerSettings = field(default_factory=RunnerSettings)

    @property
    def log_level(self) -> int:
        if self.server.verbose:
            return logging.DEBUG
        if self.server.quiet:
            return logging.WARNING
        return logging.INFO


# =============================================================================
# Loading
# =============================================================================

def default_search_paths(cwd: str | None = None, home: str | None = None) -> list[Path]:
    """Config files tried in order: working directory first, then home."""
    cwd_path = Path(cwd or os.getcwd())
    home_path = Path(home or Path.home())
    return [cwd_path / name for name in CONFIG_FILE_NAMES] + [
        home_path / name for name in HOME_CONFIG_FILES
    ]


def load_configuration(
    cli_args: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
    search_paths: Sequence[Path] | None = None,
) -> Configuration:
    """
    Resolve the configuration from every layer.

    Args:
        cli_args: Command-line arguments without the program name
        environ: Environment mapping (defaults to ``os.environ``)
        search_paths: Config files to try when none is named explicitly

    A config file named with ``--config`` or ``VITEST_MCP_CONFIG`` that
    cannot be loaded is logged and skipped, leaving the defaults in place.
    """
    environ = os.environ if environ is None else environ
    cli_overrides, config_path = parse_cli_args(cli_args or [])

    explicit_path = config_path or environ.get("VITEST_MCP_CONFIG")
    try:
        if explicit_path:
            file_overrides = read_config_file(Path(explicit_path))
        else:
            file_overrides = find_config_file(
                default_search_paths() if search_paths is None else search_paths
            )
    except ConfigError as e:
        logger.error("Ignoring configuration file: %s", e)
        file_overrides = {}

    merged: dict[str, Any] = {}
    for layer in (file_overrides, environment_overrides(environ), cli_overrides):
        merged = merge_config(merged, layer)

    return build_configuration(merged)


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except ValueError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    logger.debug("Loaded configuration from %s", path)
    return data


def find_config_file(search_paths: Sequence[Path]) -> dict[str, Any]:
    """First readable config file; broken files are logged and skipped."""
    for path in search_paths:
        if not path.is_file():
            continue
        try:
            return read_config_file(path)
        except ConfigError as e:
            logger.error("Skipping configuration file: %s", e)
    return {}


def environment_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """``VITEST_MCP_*`` variables as a partial config."""
    overrides: dict[str, Any] = {}

    if environ.get("VITEST_MCP_TEST_FORMAT"):
        overrides.setdefault("testDefaults", {})["format"] = environ["VITEST_MCP_TEST_FORMAT"]
    if environ.get("VITEST_MCP_TEST_TIMEOUT"):
        try:
            timeout = int(environ["VITEST_MCP_TEST_TIMEOUT"])
        except ValueError:
            logger.warning("Ignoring non-numeric VITEST_MCP_TEST_TIMEOUT")
        else:
            overrides.setdefault("testDefaults", {})["timeout"] = timeout
    if environ.get("VITEST_MCP_COVERAGE_FORMAT"):
        overrides.setdefault("coverageDefaults", {})["format"] = environ["VITEST_MCP_COVERAGE_FORMAT"]
    if environ.get("VITEST_MCP_VERBOSE"):
        overrides.setdefault("server", {})["verbose"] = environ["VITEST_MCP_VERBOSE"] == "true"
    if environ.get("VITEST_MCP_WORKING_DIR"):
        overrides.setdefault("server", {})["workingDirectory"] = environ["VITEST_MCP_WORKING_DIR"]

    return overrides


def merge_config(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep merge; ``None`` in the override keeps the base value."""
    result = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def build_configuration(data: Mapping[str, Any]) -> Configuration:
    """Typed settings from a merged camelCase mapping; bad values keep defaults."""
    defaults = Configuration()

    test = _section(data, "testDefaults")
    coverage = _section(data, "coverageDefaults")
    discovery = _section(data, "discovery")
    server = _section(data, "server")
    safety = _section(data, "safety")
    runner = _section(data, "runner")

    allowed = safety.get("allowedPaths")
    if isinstance(allowed, str):
        allowed = [allowed]

    return Configuration(
        test_defaults=TestDefaults(
            format=_format(test.get("format"), defaults.test_defaults.format),
            timeout_ms=_positive_int(test.get("timeout"), defaults.test_defaults.timeout_ms),
        ),
        coverage_defaults=CoverageDefaults(
            format=_format(coverage.get("format"), defaults.coverage_defaults.format),
            exclude=_strings(coverage.get("exclude"), defaults.coverage_defaults.exclude),
            thresholds=_thresholds(coverage.get("thresholds")),
            threshold=_percentage(coverage.get("threshold")),
            timeout_multiplier=_positive_int(
                coverage.get("timeoutMultiplier"), defaults.coverage_defaults.timeout_multiplier
            ),
        ),
        discovery=DiscoverySettings(
            test_patterns=_strings(discovery.get("testPatterns"), defaults.discovery.test_patterns),
            exclude_dirs=_strings(discovery.get("excludePatterns"), defaults.discovery.exclude_dirs),
            max_depth=_positive_int(discovery.get("maxDepth"), defaults.discovery.max_depth),
        ),
        server=ServerSettings(
            verbose=bool(server.get("verbose", False)),
            quiet=bool(server.get("quiet", False)),
            allow_root_execution=bool(server.get("allowRootExecution", False)),
            working_directory=server.get("workingDirectory") or None,
        ),
        safety=SafetySettings(
            allowed_paths=_strings(allowed, None) if allowed else None,
            kill_grace_ms=_positive_int(safety.get("killGraceMs"), defaults.safety.kill_grace_ms),
        ),
        runner=RunnerSettings(
            command=_strings(runner.get("command"), defaults.runner.command) or defaults.runner.command,
        ),
    )


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logger.warning("Ignoring config section %r: expected an object", key)
        return {}
    return value


def _format(value: Any, default: str) -> str:
    if value is None:
        return default
    if value not in VALID_FORMATS:
        logger.warning("Ignoring unknown format %r (expected one of %s)", value, VALID_FORMATS)
        return default
    return value


def _positive_int(value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        logger.warning("Ignoring invalid numeric setting %r", value)
        return default
    return int(value)


def _percentage(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
        logger.warning("Ignoring invalid coverage threshold %r", value)
        return None
    return value


def _thresholds(value: Any) -> dict[str, float] | None:
    if not isinstance(value, Mapping):
        return None
    thresholds = {}
    for metric in COVERAGE_METRICS:
        percentage = _percentage(value.get(metric))
        if percentage is not None:
            thresholds[metric] = percentage
    return thresholds or None


def _strings(value: Any, default):
    if value is None:
        return default
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        logger.warning("Ignoring invalid list setting %r", value)
        return default
    return tuple(value)


# =============================================================================
# Command line
# =============================================================================

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vitest-mcp",
        description="MCP server that runs vitest and returns results shaped for LLM agents.",
    )
    parser.add_argument("--config", "-c", help="Path to a JSON configuration file")
    parser.add_argument("--format", choices=VALID_FORMATS, help="Default run_tests output format")
    parser.add_argument("--coverage-format", choices=VALID_FORMATS, help="Default analyze_coverage output format")
    parser.add_argument("--timeout", type=int, help="Test run timeout in milliseconds")
    parser.add_argument("--threshold", type=float, help="Coverage threshold applied to every metric")
    parser.add_argument("--verbose", "-v", action="store_true", default=None, help="Debug logging")
    parser.add_argument("--quiet", "-q", action="store_true", default=None, help="Only log warnings and errors")
    parser.add_argument(
        "--allow-root",
        action="store_true",
        default=None,
        help="Allow running against the whole project root",
    )
    parser.add_argument(
        "--allowed-path",
        action="append",
        dest="allowed_paths",
        help="Restrict set_project_root to this directory (repeatable)",
    )
    parser.add_argument("--working-dir", "--cwd", dest="working_dir", help="Working directory for config lookup")
    return parser


def parse_cli_args(argv: Sequence[str]) -> tuple[dict[str, Any], str | None]:
    """Parse flags into a partial config and the explicit config path, if any."""
    args = build_arg_parser().parse_args(list(argv))

    overrides: dict[str, Any] = {
        "testDefaults": {"format": args.format, "timeout": args.timeout},
        "coverageDefaults": {"format": args.coverage_format, "threshold": args.threshold},
        "server": {
            "verbose": args.verbose,
            "quiet": args.quiet,
            "allowRootExecution": args.allow_root,
            "workingDirectory": args.working_dir,
        },
        "safety": {"allowedPaths": args.allowed_paths},
    }
    return overrides, args.config
