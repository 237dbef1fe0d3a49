"""Exception taxonomy for the scheduling core."""


class PrepigoError(Exception):
    """Base class for all prepigo errors."""


class ConfigError(PrepigoError, ValueError):
    """Settings or algorithm parameters are malformed.

    Raised before any computation runs.
    """


class StateError(PrepigoError):
    """A memory-state slot does not have the shape the active scheduler expects.

    The reviewer recovers from this by treating the item as new.
    """


class ContainerNotFound(PrepigoError, LookupError):
    """A deck or bank id could not be found in the forest."""

    def __init__(self, container_id: str):
        super().__init__(f"Container not found: {container_id}")
        self.container_id = container_id
