"""Integrations that redirect third-party date libraries.

The registry is static: built-in integrations come first in a fixed order,
followed by integrations registered by other packages under the
``timeshift.integrations`` entry point group, sorted by entry point name.
"""

import logging
from importlib.metadata import entry_points

from timeshift.constants import ENTRY_POINT_GROUP
from timeshift.integrations.arrow import ArrowIntegration
from timeshift.integrations.base import LibraryIntegration
from timeshift.integrations.pendulum import PendulumIntegration

logger = logging.getLogger(__name__)

__all__ = [
    "ArrowIntegration",
    "BUILTIN_INTEGRATIONS",
    "ENTRY_POINT_GROUP",
    "LibraryIntegration",
    "PendulumIntegration",
    "default_integrations",
    "discover_entry_point_integrations",
]

# Built-in integrations, instantiated fresh for every hijacker
BUILTIN_INTEGRATIONS: list[type[LibraryIntegration]] = [
    ArrowIntegration,
    PendulumIntegration,
]

# Cache for entry point integration classes
_entry_point_integrations: list[type[LibraryIntegration]] | None = None


def discover_entry_point_integrations(
    force_reload: bool = False,
) -> list[type[LibraryIntegration]]:
    """
    Discover integration classes registered via entry points.

    Third-party packages can register an integration by adding an entry
    point in their pyproject.toml:

        [project.entry-points."timeshift.integrations"]
        when = "my_package.timeshift:WhenIntegration"

    Args:
        force_reload: If True, re-discover integrations even if cached.

    Returns:
        Integration classes, sorted by entry point name.
    """
    global _entry_point_integrations

    if _entry_point_integrations is not None and not force_reload:
        return _entry_point_integrations

    classes: list[type[LibraryIntegration]] = []

    try:
        eps = sorted(entry_points(group=ENTRY_POINT_GROUP), key=lambda ep: ep.name)
        for ep in eps:
            try:
                integration_class = ep.load()
            except (ImportError, AttributeError) as e:
                logger.debug("Failed to load entry point integration %s: %s", ep.name, e)
                continue
            if isinstance(integration_class, type) and issubclass(
                integration_class, LibraryIntegration
            ):
                classes.append(integration_class)
            else:
                logger.debug("Entry point %s is not a LibraryIntegration, skipping", ep.name)
    except (TypeError, OSError) as e:
        logger.debug("Error discovering entry points: %s", e)

    _entry_point_integrations = classes
    return classes


def default_integrations(include_entry_points: bool = True) -> list[LibraryIntegration]:
    """
    Build fresh integration instances for a hijacker.

    Args:
        include_entry_points: Whether to include integrations registered by
            other packages.

    Returns:
        Built-in integrations followed by entry point integrations.
    """
    classes = list(BUILTIN_INTEGRATIONS)
    if include_entry_points:
        builtin_ids = {cls.library_id for cls in BUILTIN_INTEGRATIONS}
        classes.extend(
            cls for cls in discover_entry_point_integrations() if cls.library_id not in builtin_ids
        )

    integrations: list[LibraryIntegration] = []
    for cls in classes:
        try:
            integrations.append(cls())
        except (TypeError, AttributeError, RuntimeError) as e:
            logger.debug("Failed to instantiate integration %s: %s", cls.__name__, e)
    return integrations
