"""Environment classification and the activation policy.

The virtual clock must never switch itself on in production. Classification
uses the signals available to a Python process, in order: a declared run mode
in the environment, a loaded test runner, a local host name, and an optimized
interpreter. When nothing resolves, the process is assumed to be in
development.
"""

from __future__ import annotations

import logging
import os
import socket
import sys
from collections.abc import Collection
from collections.abc import Mapping

from timeshift.constants import AUTO
from timeshift.constants import DEVELOPMENT_HOSTNAME_SUFFIXES
from timeshift.constants import DEVELOPMENT_HOSTNAMES
from timeshift.constants import ENVIRONMENT_VARIABLES
from timeshift.constants import PYTEST_CURRENT_TEST_VARIABLE
from timeshift.constants import TEST_RUNNER_MODULES
from timeshift.exceptions import ConfigurationError
from timeshift.types import Environment

logger = logging.getLogger(__name__)

_ALIASES: dict[str, Environment] = {
    "prod": Environment.PRODUCTION,
    "production": Environment.PRODUCTION,
    "live": Environment.PRODUCTION,
    "test": Environment.TEST,
    "testing": Environment.TEST,
    "ci": Environment.TEST,
    "dev": Environment.DEVELOPMENT,
    "develop": Environment.DEVELOPMENT,
    "development": Environment.DEVELOPMENT,
    "local": Environment.DEVELOPMENT,
}


def normalize_environment(value: str | None) -> Environment | None:
    """Map a declared mode such as "prod" or "Testing" to an Environment.

    Returns:
        The matching Environment, or None if the value is not recognized.
    """
    if not value:
        return None
    return _ALIASES.get(value.strip().lower())


def _hostname() -> str | None:
    try:
        return socket.gethostname()
    except OSError:
        return None


def detect_environment(
    environ: Mapping[str, str] | None = None,
    modules: Collection[str] | None = None,
    hostname: str | None = None,
) -> Environment:
    """Classify the current runtime context.

    Args:
        environ: Environment variables. Defaults to ``os.environ``.
        modules: Names of loaded modules. Defaults to ``sys.modules``.
        hostname: Host name. Defaults to ``socket.gethostname()``.

    Returns:
        The detected Environment; DEVELOPMENT if no signal resolves.
    """
    if environ is None:
        environ = os.environ
    if modules is None:
        modules = sys.modules

    for variable in ENVIRONMENT_VARIABLES:
        declared = normalize_environment(environ.get(variable))
        if declared is not None:
            return declared

    if PYTEST_CURRENT_TEST_VARIABLE in environ:
        return Environment.TEST
    if any(name in modules for name in TEST_RUNNER_MODULES):
        return Environment.TEST

    host = (hostname if hostname is not None else _hostname()) or ""
    host = host.lower()
    if host in DEVELOPMENT_HOSTNAMES or host.endswith(DEVELOPMENT_HOSTNAME_SUFFIXES):
        return Environment.DEVELOPMENT

    # python -O is how optimized deployments are usually started
    if sys.flags.optimize > 0:
        return Environment.PRODUCTION

    return Environment.DEVELOPMENT


def is_activation_allowed(environment: Environment | str) -> bool:
    """Return whether the virtual clock may be activated in ``environment``.

    Strings are read like declared modes, so "production" and "prod" are
    refused just like Environment.PRODUCTION. Always False for production.
    """
    if isinstance(environment, Environment):
        return environment is not Environment.PRODUCTION
    return normalize_environment(environment) is not Environment.PRODUCTION


def resolve_environment(value: Environment | str | None) -> Environment:
    """Resolve an option value to a concrete Environment.

    ``"auto"`` and None trigger detection.

    Raises:
        ConfigurationError: If the value names no known environment.
    """
    if value is None or value == AUTO:
        return detect_environment()
    if isinstance(value, Environment):
        return value
    if isinstance(value, str):
        resolved = normalize_environment(value)
        if resolved is not None:
            return resolved
    raise ConfigurationError("environment", f"Unknown environment: {value!r}")


def get_environment_warning(environment: Environment) -> str | None:
    """Return a message explaining the virtual clock's state, if one is needed."""
    if environment is Environment.PRODUCTION:
        return "Time control is disabled in production for safety. This is expected behavior."
    return None


def log_environment_info(environment: Environment, enabled: bool) -> None:
    """Log whether time control is active in ``environment``."""
    if enabled:
        logger.info("Time control enabled in %s environment", environment)
        return

    warning = get_environment_warning(environment)
    if warning:
        logger.warning(warning)
    else:
        logger.info("Time control disabled in %s environment", environment)
