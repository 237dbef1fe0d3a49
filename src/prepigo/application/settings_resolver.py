"""
Effective settings resolution.

A container uses the settings of the nearest container on its path to the
root (itself included) that declares a custom override, else the global
settings.
"""

import logging

from prepigo.domain.errors import ContainerNotFound
from prepigo.domain.models import Container
from prepigo.domain.settings import SrsSettings

from .tree import find_with_ancestors

logger = logging.getLogger(__name__)

GLOBAL_SOURCE = "Global"


def resolve_settings_with_source(
    forest: list[Container] | tuple[Container, ...],
    container_id: str,
    global_settings: SrsSettings,
) -> tuple[SrsSettings, str]:
    """
    Resolve the settings that apply to a container, and where they came from.

    Args:
        forest: The full container forest (ancestors must be reachable).
        container_id: Target container.
        global_settings: Fallback settings.

    Returns:
        (settings, source name). The source is the name of the container
        that declared the override, or "Global".
    """
    try:
        path = find_with_ancestors(forest, container_id)
    except ContainerNotFound as e:
        logger.debug(f"{e}; using global settings")
        return global_settings, GLOBAL_SOURCE

    for node in reversed(path):
        if node.has_custom_settings and node.settings is not None:
            return node.settings, node.name

    return global_settings, GLOBAL_SOURCE


def resolve_settings(
    forest: list[Container] | tuple[Container, ...],
    container_id: str,
    global_settings: SrsSettings,
) -> SrsSettings:
    """Effective settings for a container (see `resolve_settings_with_source`)."""
    return resolve_settings_with_source(forest, container_id, global_settings)[0]
