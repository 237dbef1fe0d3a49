"""
Traversal helpers for container forests (decks or question banks).

The forest is the single source of truth for parent/child relations:
nothing here caches back-pointers, so a rebuilt tree never leaves stale
references behind.
"""

from collections.abc import Iterator

from prepigo.domain.errors import ContainerNotFound
from prepigo.domain.models import Container, Item


def find_container(forest: list[Container] | tuple[Container, ...], container_id: str) -> Container:
    """
    Depth-first search for a container by id.

    Raises:
        ContainerNotFound: If no container in the forest has this id.
    """
    path = find_with_ancestors(forest, container_id)
    return path[-1]


def find_with_ancestors(
    forest: list[Container] | tuple[Container, ...],
    container_id: str,
) -> list[Container]:
    """
    Path from a root down to the container with `container_id` (inclusive).

    Raises:
        ContainerNotFound: If no container in the forest has this id.
    """

    def walk(nodes, trail: list[Container]) -> list[Container] | None:
        for node in nodes:
            if node.id == container_id:
                return [*trail, node]
            found = walk(node.children, [*trail, node])
            if found:
                return found
        return None

    path = walk(forest, [])
    if path is None:
        raise ContainerNotFound(container_id)
    return path


def iter_containers(forest: list[Container] | tuple[Container, ...]) -> Iterator[Container]:
    """Yield every container, parents before children, in encounter order."""
    for node in forest:
        yield node
        yield from iter_containers(node.children)


def iter_items_with_container(
    forest: list[Container] | tuple[Container, ...],
) -> Iterator[tuple[Item, Container]]:
    """Yield (item, owning container) pairs in encounter order."""
    for node in iter_containers(forest):
        for item in node.items:
            yield item, node


def find_item(forest: list[Container] | tuple[Container, ...], item_id: str) -> tuple[Item, Container] | None:
    """Locate an item and its owning container, or None if it does not exist."""
    for item, owner in iter_items_with_container(forest):
        if item.id == item_id:
            return item, owner
    return None
