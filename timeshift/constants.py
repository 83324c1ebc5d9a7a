"""Centralized constants for timeshift.

This module consolidates unit multipliers, environment signal names and
other magic values used across multiple modules.
"""

# =============================================================================
# Duration Multipliers (milliseconds)
# =============================================================================

MS_PER_SECOND: int = 1000
MS_PER_MINUTE: int = 60 * MS_PER_SECOND
MS_PER_HOUR: int = 60 * MS_PER_MINUTE
MS_PER_DAY: int = 24 * MS_PER_HOUR
MS_PER_WEEK: int = 7 * MS_PER_DAY

#: Unit suffixes accepted by period shortcuts such as "15m" or "2h"
PERIOD_UNIT_MULTIPLIERS: dict[str, int] = {
    "s": MS_PER_SECOND,
    "m": MS_PER_MINUTE,
    "h": MS_PER_HOUR,
    "d": MS_PER_DAY,
    "w": MS_PER_WEEK,
}

#: Unit assumed when a period shortcut has no suffix
DEFAULT_PERIOD_UNIT: str = "m"

# =============================================================================
# Environment Detection
# =============================================================================

#: Environment variables consulted (in order) for a declared run mode
ENVIRONMENT_VARIABLES: tuple[str, ...] = (
    "TIMESHIFT_ENV",
    "APP_ENV",
    "ENVIRONMENT",
    "PYTHON_ENV",
)

#: Environment variable set by pytest while a test is running
PYTEST_CURRENT_TEST_VARIABLE: str = "PYTEST_CURRENT_TEST"

#: Modules whose presence in sys.modules indicates a test runner
TEST_RUNNER_MODULES: tuple[str, ...] = ("pytest", "_pytest", "nose2", "ward")

#: Hostnames treated as a local development machine
DEVELOPMENT_HOSTNAMES: frozenset[str] = frozenset({"localhost", "127.0.0.1", "::1"})

#: Hostname suffixes treated as a local development machine
DEVELOPMENT_HOSTNAME_SUFFIXES: tuple[str, ...] = (".local", ".localdomain")

# =============================================================================
# Library Integrations
# =============================================================================

#: Entry point group for third-party library integrations
ENTRY_POINT_GROUP: str = "timeshift.integrations"

#: Sentinel used in options for "decide from the environment"
AUTO: str = "auto"
