"""
Shared constants used across the project.
"""

from typing import Final

# Runner invocation
DEFAULT_RUNNER_COMMAND: Final[tuple[str, ...]] = ("npx", "vitest", "run")
JSON_REPORTER_FLAG: Final[str] = "--reporter=json"

# Test execution
TEST_TIMEOUT_MS: Final[int] = 30_000
COVERAGE_TIMEOUT_MULTIPLIER: Final[int] = 2
KILL_GRACE_MS: Final[int] = 2_000
TIMEOUT_EXIT_CODE: Final[int] = 124
SPAWN_FAILURE_EXIT_CODE: Final[int] = 1

# Environment overrides applied to every runner process
RUNNER_ENV_OVERRIDES: Final[dict[str, str]] = {
    "CI": "true",
    "FORCE_COLOR": "0",
    "NO_COLOR": "1",
    "VITEST_UI": "false",
    "HEADLESS": "true",
    "STORYBOOK_DISABLE_TELEMETRY": "1",
    "SKIP_STORYBOOK": "true",
    "VITEST_DISABLE_STORYBOOK": "true",
}

# Output limits
OUTPUT_PREVIEW_CHARS: Final[int] = 500
MAX_STACK_FRAMES: Final[int] = 3
SNIPPET_CONTEXT_LINES: Final[int] = 2

# Report markers used to pick the JSON line out of noisy stdout
TEST_REPORT_MARKERS: Final[tuple[str, ...]] = ('"version"',)
COVERAGE_REPORT_MARKERS: Final[tuple[str, ...]] = ('"coverageMap"', '"total"')

# On-disk fallback artifact, relative to the project root
COVERAGE_FALLBACK_FILE: Final[tuple[str, ...]] = ("coverage", "coverage-final.json")

# Coverage reconciliation exclusions (each one is a hard exclusion)
TEST_FILE_MARKERS: Final[tuple[str, ...]] = (".test.", ".spec.", "__tests__")
NON_PRODUCTION_MARKERS: Final[tuple[str, ...]] = (
    ".stories.", ".story.",
    "/e2e/", ".e2e.",
    "/test-utils/", "/mocks/", "/__mocks__/",
)
BUILD_ARTIFACT_MARKERS: Final[tuple[str, ...]] = (
    "/node_modules/", "/dist/", "/build/", "/coverage/", "/.next/", "/.nuxt/",
    "eslint.config.", "vite.config.", "vitest.config.", "webpack.config.",
    "rollup.config.", "babel.config.", "jest.config.", "tsconfig.",
    "package.json", "package-lock.json", "yarn.lock", "pnpm-lock.",
    ".gitignore", ".env",
    "README.", "CHANGELOG.", "LICENSE",
)

# Coverage command defaults
DEFAULT_COVERAGE_EXCLUDE: Final[tuple[str, ...]] = (
    "**/*.stories.*",
    "**/*.story.*",
    "**/.storybook/**",
    "**/storybook-static/**",
    "**/e2e/**",
    "**/*.e2e.*",
    "**/test-utils/**",
    "**/mocks/**",
    "**/__mocks__/**",
    "**/setup-tests.*",
    "**/test-setup.*",
)
COVERAGE_PROVIDERS: Final[tuple[str, ...]] = (
    "@vitest/coverage-v8",
    "@vitest/coverage-istanbul",
)

# Installed tooling checked before a coverage run
VITEST_PACKAGE: Final[str] = "vitest"
VITEST_MINIMUM_VERSION: Final[str] = "0.34.0"
VITEST_RECOMMENDED_VERSION: Final[str] = "3.0.0"
COVERAGE_PROVIDER_MINIMUM_VERSION: Final[str] = "0.34.0"

COVERAGE_METRICS: Final[tuple[str, ...]] = ("lines", "functions", "branches", "statements")

# Source / test file conventions
SOURCE_EXTENSIONS: Final[tuple[str, ...]] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
TEST_DIRECTORY_NAMES: Final[tuple[str, ...]] = ("tests", "__tests__")

# Vitest config lookup order (MCP-specific config first)
VITEST_CONFIG_CANDIDATES: Final[tuple[str, ...]] = (
    "vitest.mcp.config.ts",
    "vitest.config.ts",
    "vitest.config.js",
    "vitest.config.mjs",
    "vite.config.ts",
    "vite.config.js",
    "vite.config.mjs",
)
PROJECT_MARKERS: Final[tuple[str, ...]] = (
    "package.json",
    "vitest.config.ts",
    "vitest.config.js",
    "vitest.config.mjs",
)

# Test discovery
DISCOVERY_EXCLUDE_DIRS: Final[tuple[str, ...]] = ("node_modules", "dist", "build", "coverage", ".git")
DISCOVERY_MAX_DEPTH: Final[int] = 10
DISCOVERY_TEST_PATTERNS: Final[tuple[str, ...]] = (
    "**/*.{test,spec}.{js,ts,jsx,tsx,mjs,cjs}",
    "**/__tests__/*.{js,ts,jsx,tsx,mjs,cjs}",
)

# Server configuration files (relative to the working directory, then home)
CONFIG_FILE_NAMES: Final[tuple[str, ...]] = (
    ".vitest-mcp.json",
    ".vitest-mcp.config.json",
    "vitest-mcp.json",
    "vitest-mcp.config.json",
)
HOME_CONFIG_FILES: Final[tuple[str, ...]] = (
    ".vitest-mcp.json",
    ".config/vitest-mcp.json",
)
