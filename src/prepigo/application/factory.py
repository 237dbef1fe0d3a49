"""
Collection Repository Factory
Centralizes the logic for selecting the storage adapter.
"""

from prepigo.application.config import AppConfig
from prepigo.domain.errors import ConfigError
from prepigo.domain.ports import CollectionRepository
from prepigo.infrastructure.yaml_repository import YamlCollectionRepository

SUPPORTED_SUFFIXES = (".yaml", ".yml", ".json")


def get_collection_repository(config: AppConfig) -> CollectionRepository:
    """
    Returns the CollectionRepository implementation for the configured path.

    JSON is a subset of YAML, so one adapter reads both.
    """
    path = config.collection_path
    if path is None:
        raise ConfigError("No collection path configured")
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ConfigError(f"Unsupported collection format: {path.suffix or path.name}")
    return YamlCollectionRepository(path)
